"""Goal evaluation over a slice of the ledger.

Pure functions: callers fetch the scoped tallies and pass them in together
with "today", so evaluation is deterministic and never cached.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from inkwell.db.models import Tally
from inkwell.goals.cadence import date_windows
from inkwell.goals.schemas import Cadence, HabitParameters, TargetParameters, Threshold
from inkwell.ledger.service import sum_tallies


@dataclass
class HabitWindow:
    start_date: date
    end_date: date
    total: int
    achieved: bool

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass
class GoalEvaluation:
    progress: dict[str, int]
    achieved: bool
    windows: list[HabitWindow] = field(default_factory=list)
    current_streak: int = 0
    longest_streak: int = 0


def is_target_achieved(target_count: int, current_count: int) -> bool:
    """Target check. A negative target (e.g. cutting words) is met by going at least that low."""
    if target_count < 0:
        return current_count <= target_count
    return current_count >= target_count


def evaluate_target(parameters: TargetParameters, tallies: Iterable[Tally]) -> GoalEvaluation:
    progress = sum_tallies(tallies)
    threshold = parameters.threshold
    current = progress.get(str(threshold.measure), 0)
    return GoalEvaluation(progress=progress, achieved=is_target_achieved(threshold.count, current))


def analyze_habit(
    tallies: Sequence[Tally],
    cadence: Cadence,
    threshold: Threshold | None,
    today: date,
    start_date: date | None = None,
    end_date: date | None = None,
    week_start_day: int = 6,
) -> tuple[list[HabitWindow], list[int]]:
    """Split the habit's active range into cadence windows and find streaks.

    Returns the windows and the list of streak lengths (last entry is the
    current run). A failing window that contains `today` is still in
    progress, so it neither extends nor breaks the running streak.
    """
    relevant = [
        tally for tally in tallies
        if tally.date <= today and (threshold is None or tally.measure == str(threshold.measure))
    ]
    if not relevant:
        return [], [0]
    relevant.sort(key=lambda tally: tally.date)

    range_start = start_date or relevant[0].date
    range_end = today if end_date is None else min(end_date, today)

    windows: list[HabitWindow] = []
    streaks = [0]
    for window in date_windows(range_start, range_end, str(cadence.unit), cadence.period, week_start_day):
        in_window = [tally for tally in relevant if window.contains(tally.date)]
        if threshold is None:
            total = len(in_window)
            achieved = total > 0
        else:
            total = sum(tally.count for tally in in_window)
            achieved = total >= threshold.count

        habit_window = HabitWindow(window.start, window.end, total, achieved)
        windows.append(habit_window)

        if achieved:
            streaks[-1] += 1
        elif habit_window.contains(today):
            pass
        elif streaks[-1] != 0:
            streaks.append(0)

    return windows, streaks


def evaluate_habit(
    parameters: HabitParameters,
    tallies: Sequence[Tally],
    today: date,
    start_date: date | None = None,
    end_date: date | None = None,
    week_start_day: int = 6,
) -> GoalEvaluation:
    windows, streaks = analyze_habit(
        tallies,
        parameters.cadence,
        parameters.threshold,
        today,
        start_date=start_date,
        end_date=end_date,
        week_start_day=week_start_day,
    )
    return GoalEvaluation(
        progress=sum_tallies(tallies),
        achieved=bool(windows) and windows[-1].achieved,
        windows=windows,
        current_streak=streaks[-1],
        longest_streak=max(streaks),
    )
