"""Leaderboard business logic.

Rules:
- Boards are visible to their members, and to everyone when public
- A board nobody may see is reported as missing, never as forbidden
- Settings, teams and roles are changed by owners only
- The creator becomes an owner who does not participate
- Individual-goal mode clears the shared goal and measures and turns off
  fundraiser mode
- Join codes are server-generated
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.constants import State
from inkwell.db.models import Leaderboard, LeaderboardMember
from inkwell.errors import NotFoundError, ValidationError
from inkwell.leaderboards.join_codes import generate_unique_join_code, normalize_join_code
from inkwell.leaderboards.membership import add_owner_member, get_member_by_user, require_owner_member
from inkwell.leaderboards.schemas import CreateLeaderboardRequest, UpdateLeaderboardRequest

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "individual_goal_mode",
    "fundraiser_mode",
    "enable_teams",
    "is_joinable",
    "is_public",
)


def normalize_goal_mode(leaderboard: Leaderboard) -> None:
    """Individual-goal boards carry no shared goal, no measures and no fundraiser."""
    if leaderboard.individual_goal_mode:
        leaderboard.goal = {}
        leaderboard.measures = []
        leaderboard.fundraiser_mode = False


def _check_dates(start_date: date | None, end_date: date | None) -> None:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError("Leaderboard start date must not be after its end date.", code="INVALID_DATE_RANGE")


def _measure_list(measures) -> list[str]:
    return list(dict.fromkeys(str(measure) for measure in measures))


def _goal_map(goal) -> dict[str, int]:
    return {str(measure): count for measure, count in goal.items()}


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_active_leaderboard(db: AsyncSession, leaderboard_id: int) -> Leaderboard | None:
    result = await db.execute(
        select(Leaderboard).where(Leaderboard.id == leaderboard_id, Leaderboard.state == State.ACTIVE)
    )
    return result.scalar_one_or_none()


async def get_visible_leaderboard(
    db: AsyncSession,
    leaderboard_id: int,
    user_id: int,
) -> tuple[Leaderboard, LeaderboardMember | None]:
    """A board the user may see, with their membership if they have one."""
    leaderboard = await get_active_leaderboard(db, leaderboard_id)
    if leaderboard is None:
        raise NotFoundError("leaderboard", leaderboard_id)

    member = await get_member_by_user(db, leaderboard.id, user_id)
    if member is None and not leaderboard.is_public:
        raise NotFoundError("leaderboard", leaderboard_id)
    return leaderboard, member


async def require_joinable_leaderboard(db: AsyncSession, leaderboard_id: int) -> Leaderboard:
    leaderboard = await get_active_leaderboard(db, leaderboard_id)
    if leaderboard is None or not leaderboard.is_joinable:
        raise NotFoundError("leaderboard", leaderboard_id)
    return leaderboard


async def get_by_join_code(db: AsyncSession, join_code: str) -> Leaderboard:
    """Holding the code is enough to see the board, member or not."""
    result = await db.execute(
        select(Leaderboard).where(
            Leaderboard.join_code == normalize_join_code(join_code),
            Leaderboard.state == State.ACTIVE,
        )
    )
    leaderboard = result.scalar_one_or_none()
    if leaderboard is None:
        raise NotFoundError("leaderboard", join_code, id_field="join code")
    return leaderboard


async def list_leaderboards(db: AsyncSession, user_id: int) -> list[tuple[Leaderboard, LeaderboardMember]]:
    """Every active board the user is a member of, oldest first."""
    result = await db.execute(
        select(Leaderboard, LeaderboardMember)
        .join(LeaderboardMember, LeaderboardMember.leaderboard_id == Leaderboard.id)
        .where(
            LeaderboardMember.user_id == user_id,
            LeaderboardMember.state == State.ACTIVE,
            Leaderboard.state == State.ACTIVE,
        )
        .order_by(Leaderboard.id)
    )
    return [(row[0], row[1]) for row in result.all()]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def create_leaderboard(db: AsyncSession, user_id: int, data: CreateLeaderboardRequest) -> Leaderboard:
    """Create a board. The creator becomes its first owner."""
    _check_dates(data.start_date, data.end_date)

    leaderboard = Leaderboard(
        owner_id=user_id,
        title=data.title,
        description=data.description,
        measures=_measure_list(data.measures),
        start_date=data.start_date,
        end_date=data.end_date,
        goal=_goal_map(data.goal),
        individual_goal_mode=data.individual_goal_mode,
        fundraiser_mode=data.fundraiser_mode,
        enable_teams=data.enable_teams,
        is_joinable=data.is_joinable,
        is_public=data.is_public,
        join_code=await generate_unique_join_code(db),
        state=State.ACTIVE,
    )
    normalize_goal_mode(leaderboard)
    db.add(leaderboard)
    await db.flush()

    await add_owner_member(db, leaderboard, user_id)
    logger.info("Leaderboard created: id=%d owner=%d", leaderboard.id, user_id)
    return leaderboard


async def update_leaderboard(
    db: AsyncSession,
    leaderboard_id: int,
    user_id: int,
    data: UpdateLeaderboardRequest,
) -> Leaderboard:
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user_id)
    await require_owner_member(db, leaderboard, user_id)
    provided = data.model_fields_set

    start_date = data.start_date if "start_date" in provided else leaderboard.start_date
    end_date = data.end_date if "end_date" in provided else leaderboard.end_date
    _check_dates(start_date, end_date)
    leaderboard.start_date = start_date
    leaderboard.end_date = end_date

    if data.measures is not None:
        leaderboard.measures = _measure_list(data.measures)
    if data.goal is not None:
        leaderboard.goal = _goal_map(data.goal)
    for field_name in UPDATABLE_FIELDS:
        value = getattr(data, field_name)
        if value is not None:
            setattr(leaderboard, field_name, value)

    normalize_goal_mode(leaderboard)
    await db.flush()
    logger.info("Leaderboard updated: id=%d by=%d", leaderboard.id, user_id)
    return leaderboard


async def star_leaderboard(db: AsyncSession, leaderboard_id: int, user_id: int, starred: bool) -> LeaderboardMember:
    """Starring is per member, so only members can star."""
    _leaderboard, member = await get_visible_leaderboard(db, leaderboard_id, user_id)
    if member is None:
        raise NotFoundError("member", user_id, id_field="user id")
    member.starred = starred
    await db.flush()
    return member


async def delete_leaderboard(db: AsyncSession, leaderboard_id: int, user_id: int) -> Leaderboard:
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user_id)
    await require_owner_member(db, leaderboard, user_id)
    leaderboard.state = State.DELETED
    await db.flush()
    logger.info("Leaderboard deleted: id=%d by=%d", leaderboard.id, user_id)
    return leaderboard
