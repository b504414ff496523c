"""Leaderboard teams. Reads follow board visibility; writes need an owner."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.db.models import Leaderboard, LeaderboardMember, LeaderboardTeam
from inkwell.errors import NotFoundError
from inkwell.leaderboards.membership import require_owner_member
from inkwell.leaderboards.schemas import CreateTeamRequest, UpdateTeamRequest

logger = logging.getLogger(__name__)


async def list_teams(db: AsyncSession, leaderboard_id: int) -> list[LeaderboardTeam]:
    result = await db.execute(
        select(LeaderboardTeam)
        .where(LeaderboardTeam.leaderboard_id == leaderboard_id)
        .order_by(LeaderboardTeam.id)
    )
    return list(result.scalars().all())


async def get_team(db: AsyncSession, leaderboard_id: int, team_id: int) -> LeaderboardTeam | None:
    result = await db.execute(
        select(LeaderboardTeam).where(
            LeaderboardTeam.id == team_id,
            LeaderboardTeam.leaderboard_id == leaderboard_id,
        )
    )
    return result.scalar_one_or_none()


async def require_team(db: AsyncSession, leaderboard_id: int, team_id: int) -> LeaderboardTeam:
    team = await get_team(db, leaderboard_id, team_id)
    if team is None:
        raise NotFoundError("team", team_id)
    return team


async def create_team(
    db: AsyncSession,
    leaderboard: Leaderboard,
    acting_user_id: int,
    data: CreateTeamRequest,
) -> LeaderboardTeam:
    await require_owner_member(db, leaderboard, acting_user_id)
    team = LeaderboardTeam(leaderboard_id=leaderboard.id, name=data.name, color=data.color)
    db.add(team)
    await db.flush()
    logger.info("Team created: id=%d leaderboard=%d", team.id, leaderboard.id)
    return team


async def update_team(
    db: AsyncSession,
    leaderboard: Leaderboard,
    acting_user_id: int,
    team_id: int,
    data: UpdateTeamRequest,
) -> LeaderboardTeam:
    await require_owner_member(db, leaderboard, acting_user_id)
    team = await require_team(db, leaderboard.id, team_id)
    if data.name is not None:
        team.name = data.name
    if data.color is not None:
        team.color = data.color
    await db.flush()
    return team


async def delete_team(
    db: AsyncSession,
    leaderboard: Leaderboard,
    acting_user_id: int,
    team_id: int,
) -> LeaderboardTeam:
    """Delete a team. Its members stay on the board without a team."""
    await require_owner_member(db, leaderboard, acting_user_id)
    team = await require_team(db, leaderboard.id, team_id)
    await db.execute(
        update(LeaderboardMember)
        .where(LeaderboardMember.team_id == team.id)
        .values(team_id=None)
    )
    await db.delete(team)
    await db.flush()
    logger.info("Team deleted: id=%d leaderboard=%d", team_id, leaderboard.id)
    return team
