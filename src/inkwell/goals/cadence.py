"""Calendar-aware cadence windows for habit goals.

Windows are aligned to the start of their unit (day, week, month, year) and
span `period` units. Weeks start on a configurable weekday
(0 = Monday ... 6 = Sunday).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta

from inkwell.constants import CadenceUnit


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def start_of(day: date, unit: str, week_start_day: int = 6) -> date:
    """First day of the cadence unit containing `day`."""
    if unit == CadenceUnit.DAY:
        return day
    if unit == CadenceUnit.WEEK:
        return day - timedelta(days=(day.weekday() - week_start_day) % 7)
    if unit == CadenceUnit.MONTH:
        return day.replace(day=1)
    if unit == CadenceUnit.YEAR:
        return day.replace(month=1, day=1)
    raise ValueError(f"Unknown cadence unit: {unit}")


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def add_units(day: date, unit: str, amount: int) -> date:
    """Shift `day` by `amount` cadence units, clamping month ends."""
    if unit == CadenceUnit.DAY:
        return day + timedelta(days=amount)
    if unit == CadenceUnit.WEEK:
        return day + timedelta(weeks=amount)
    if unit == CadenceUnit.MONTH:
        return _add_months(day, amount)
    if unit == CadenceUnit.YEAR:
        return _add_months(day, amount * 12)
    raise ValueError(f"Unknown cadence unit: {unit}")


def date_windows(
    start: date,
    end: date,
    unit: str,
    period: int = 1,
    week_start_day: int = 6,
) -> list[DateWindow]:
    """Consecutive windows of `period` units covering start..end inclusive.

    The first window begins at the start of the unit containing `start`, so
    it may begin before `start`; the last window may run past `end`.
    """
    if period < 1:
        raise ValueError("Cadence period must be at least 1")

    windows: list[DateWindow] = []
    window_start = start_of(start, unit, week_start_day)
    while window_start <= end:
        next_start = add_units(window_start, unit, period)
        windows.append(DateWindow(window_start, next_start - timedelta(days=1)))
        window_start = next_start
    return windows
