"""Leaderboard standings: per-member and per-team progress, percent and rank.

Percent-complete is a fraction in [0, 1]. Each goal measure is capped at 1
and the member's percent is the mean over the goal's measures, so measures
with different units are never added together. Rankings order by percent
(missing percent last), then by raw progress compared measure by measure,
then by join order.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.db.models import Leaderboard, LeaderboardMember, LeaderboardTeam
from inkwell.ledger.service import query_tallies, sum_tallies
from inkwell.leaderboards.membership import list_members
from inkwell.leaderboards.teams import list_teams
from inkwell.scope import ScopeFilter


@dataclass
class ParticipantStanding:
    member_id: int
    user_id: int
    display_name: str
    color: str
    team_id: int | None
    joined_at: dt.datetime
    progress: dict[str, int]
    percent: float | None
    goal: dict[str, int] | None = None
    rank: int = 0


@dataclass
class TeamStanding:
    team_id: int
    name: str
    color: str
    member_ids: list[int]
    progress: dict[str, int]
    percent: float | None
    rank: int = 0


@dataclass
class Standings:
    participants: list[ParticipantStanding]
    teams: list[TeamStanding] | None = None
    total: dict[str, int] | None = None
    total_percent: float | None = None
    measures: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Scoring primitives
# ---------------------------------------------------------------------------


def goal_percent(progress: Mapping[str, int], goal: Mapping[str, int] | None) -> float | None:
    """Mean of per-measure completion, each clamped to [0, 1].

    Goal entries with a non-positive count cannot be measured against and are
    skipped; a goal with nothing left (or no goal at all) has no percent.
    """
    if not goal:
        return None
    fractions = [
        min(1.0, max(0.0, progress.get(measure, 0) / count))
        for measure, count in goal.items()
        if count > 0
    ]
    if not fractions:
        return None
    return sum(fractions) / len(fractions)


def member_goal(leaderboard: Leaderboard, member: LeaderboardMember) -> dict[str, int] | None:
    """The goal a member is measured against: shared, or their own in individual mode."""
    if leaderboard.individual_goal_mode:
        if not member.goal:
            return None
        return {member.goal["measure"]: int(member.goal["count"])}
    return dict(leaderboard.goal) or None


def member_scope(leaderboard: Leaderboard, member: LeaderboardMember) -> ScopeFilter:
    """The member's works/tags, the board's window, and the measures that count."""
    if leaderboard.individual_goal_mode:
        measures = [member.goal["measure"]] if member.goal else []
    else:
        measures = list(leaderboard.measures)
    return ScopeFilter.build(
        work_ids=member.work_ids,
        tag_ids=member.tag_ids,
        start_date=leaderboard.start_date,
        end_date=leaderboard.end_date,
        measures=measures,
    )


def add_progress(totals: Sequence[Mapping[str, int]]) -> dict[str, int]:
    combined: dict[str, int] = {}
    for progress in totals:
        for measure, count in progress.items():
            combined[measure] = combined.get(measure, 0) + count
    return combined


def ranking_measures(leaderboard: Leaderboard, progresses: Sequence[Mapping[str, int]]) -> list[str]:
    """Measure order used to compare raw progress: the board's, else alphabetical."""
    if leaderboard.measures:
        return list(leaderboard.measures)
    return sorted({measure for progress in progresses for measure in progress})


def _percent_key(percent: float | None) -> tuple[int, float]:
    return (1, 0.0) if percent is None else (0, -percent)


def _progress_key(progress: Mapping[str, int], measures: Sequence[str]) -> tuple[int, ...]:
    return tuple(-progress.get(measure, 0) for measure in measures)


def rank_participants(standings: list[ParticipantStanding], measures: Sequence[str]) -> list[ParticipantStanding]:
    ordered = sorted(
        standings,
        key=lambda s: (_percent_key(s.percent), _progress_key(s.progress, measures), s.joined_at, s.member_id),
    )
    for position, standing in enumerate(ordered, start=1):
        standing.rank = position
    return ordered


def rank_teams(standings: list[TeamStanding], measures: Sequence[str]) -> list[TeamStanding]:
    ordered = sorted(
        standings,
        key=lambda s: (_percent_key(s.percent), _progress_key(s.progress, measures), s.team_id),
    )
    for position, standing in enumerate(ordered, start=1):
        standing.rank = position
    return ordered


def team_percent(
    leaderboard: Leaderboard,
    progress: Mapping[str, int],
    members: Sequence[ParticipantStanding],
) -> float | None:
    """Team completion.

    Individual-goal mode averages the members' own percents. A shared goal is
    scaled by team size, except in fundraiser mode where the team pools toward
    the unscaled goal.
    """
    if leaderboard.individual_goal_mode:
        percents = [member.percent for member in members if member.percent is not None]
        return sum(percents) / len(percents) if percents else None
    if leaderboard.fundraiser_mode:
        return goal_percent(progress, leaderboard.goal)
    scaled = {measure: count * len(members) for measure, count in leaderboard.goal.items()}
    return goal_percent(progress, scaled)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def build_participant(
    leaderboard: Leaderboard,
    member: LeaderboardMember,
    totals: Mapping[str, int],
) -> ParticipantStanding:
    goal = member_goal(leaderboard, member)
    if leaderboard.individual_goal_mode:
        progress = {measure: totals.get(measure, 0) for measure in (goal or {})}
    else:
        progress = {measure: totals.get(measure, 0) for measure in leaderboard.measures}

    display_name = member.display_name or member.user.display_name or member.user.username
    return ParticipantStanding(
        member_id=member.id,
        user_id=member.user_id,
        display_name=display_name,
        color=member.color,
        team_id=member.team_id,
        joined_at=member.created_at,
        progress=progress,
        percent=goal_percent(progress, goal),
        goal=goal,
    )


def compute_standings(
    leaderboard: Leaderboard,
    participants: Sequence[ParticipantStanding],
    teams: Sequence[LeaderboardTeam] = (),
) -> Standings:
    """Rank participants, roll them up into teams and the fundraiser pool."""
    measures = ranking_measures(leaderboard, [p.progress for p in participants])
    standings = Standings(participants=rank_participants(list(participants), measures), measures=measures)

    if leaderboard.enable_teams:
        team_rows = []
        for team in teams:
            team_members = [p for p in participants if p.team_id == team.id]
            progress = add_progress([p.progress for p in team_members])
            if not leaderboard.individual_goal_mode:
                progress = {measure: progress.get(measure, 0) for measure in leaderboard.measures}
            team_rows.append(
                TeamStanding(
                    team_id=team.id,
                    name=team.name,
                    color=team.color,
                    member_ids=[p.member_id for p in team_members],
                    progress=progress,
                    percent=team_percent(leaderboard, progress, team_members),
                )
            )
        standings.teams = rank_teams(team_rows, measures)

    if leaderboard.fundraiser_mode:
        total = add_progress([p.progress for p in participants])
        standings.total = {measure: total.get(measure, 0) for measure in leaderboard.measures}
        standings.total_percent = goal_percent(standings.total, leaderboard.goal)

    return standings


async def aggregate_leaderboard(db: AsyncSession, leaderboard: Leaderboard) -> Standings:
    """Live standings for a board. One scoped ledger query per participant."""
    members = await list_members(db, leaderboard.id, participants_only=True)
    participants = []
    for member in members:
        tallies = await query_tallies(db, member.user_id, member_scope(leaderboard, member))
        participants.append(build_participant(leaderboard, member, sum_tallies(tallies)))

    teams = await list_teams(db, leaderboard.id) if leaderboard.enable_teams else []
    return compute_standings(leaderboard, participants, teams)
