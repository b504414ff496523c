"""Leaderboard membership state machine.

A membership is (is_owner, is_participant):
- owners administer the board (settings, teams, other members' roles)
- participants are ranked; non-participants watch without a ranked row
- joining creates a non-owner membership; private boards need the join code
- a second join is a conflict
- leaving or being removed deletes the row, so the user may rejoin later
- no transition may leave an active board without an owner
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.constants import State
from inkwell.db.models import Leaderboard, LeaderboardMember, LeaderboardTeam, User
from inkwell.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from inkwell.leaderboards.join_codes import normalize_join_code
from inkwell.leaderboards.schemas import (
    JoinLeaderboardRequest,
    MemberGoal,
    UpdateMemberRequest,
    UpdateParticipationRequest,
)
from inkwell.scope import resolve_scope_entities

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_members(db: AsyncSession, leaderboard_id: int, participants_only: bool = False) -> list[LeaderboardMember]:
    """Active members of active users, in join order."""
    stmt = (
        select(LeaderboardMember)
        .join(User, User.id == LeaderboardMember.user_id)
        .where(
            LeaderboardMember.leaderboard_id == leaderboard_id,
            LeaderboardMember.state == State.ACTIVE,
            User.state == State.ACTIVE,
        )
        .order_by(LeaderboardMember.created_at, LeaderboardMember.id)
    )
    if participants_only:
        stmt = stmt.where(LeaderboardMember.is_participant.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_member(db: AsyncSession, leaderboard_id: int, member_id: int) -> LeaderboardMember | None:
    result = await db.execute(
        select(LeaderboardMember).where(
            LeaderboardMember.id == member_id,
            LeaderboardMember.leaderboard_id == leaderboard_id,
            LeaderboardMember.state == State.ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def require_member(db: AsyncSession, leaderboard_id: int, member_id: int) -> LeaderboardMember:
    member = await get_member(db, leaderboard_id, member_id)
    if member is None:
        raise NotFoundError("member", member_id)
    return member


async def get_member_by_user(db: AsyncSession, leaderboard_id: int, user_id: int) -> LeaderboardMember | None:
    result = await db.execute(
        select(LeaderboardMember).where(
            LeaderboardMember.leaderboard_id == leaderboard_id,
            LeaderboardMember.user_id == user_id,
            LeaderboardMember.state == State.ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def count_owners(db: AsyncSession, leaderboard_id: int, exclude_member_id: int | None = None) -> int:
    """Owners that still count: active memberships of active users."""
    stmt = (
        select(func.count())
        .select_from(LeaderboardMember)
        .join(User, User.id == LeaderboardMember.user_id)
        .where(
            LeaderboardMember.leaderboard_id == leaderboard_id,
            LeaderboardMember.state == State.ACTIVE,
            LeaderboardMember.is_owner.is_(True),
            User.state == State.ACTIVE,
        )
    )
    if exclude_member_id is not None:
        stmt = stmt.where(LeaderboardMember.id != exclude_member_id)
    result = await db.execute(stmt)
    return int(result.scalar_one())


async def require_owner_member(db: AsyncSession, leaderboard: Leaderboard, user_id: int) -> LeaderboardMember:
    """The caller's membership, which must carry the owner role."""
    member = await get_member_by_user(db, leaderboard.id, user_id)
    if member is None or not member.is_owner:
        raise ForbiddenError(
            "Only leaderboard owners can do that.",
            code="NOT_OWNER",
            ids={"leaderboardId": leaderboard.id},
        )
    return member


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _check_team(db: AsyncSession, leaderboard: Leaderboard, team_id: int | None) -> None:
    if team_id is None:
        return
    result = await db.execute(
        select(LeaderboardTeam.id).where(
            LeaderboardTeam.id == team_id,
            LeaderboardTeam.leaderboard_id == leaderboard.id,
        )
    )
    if result.scalar_one_or_none() is None:
        raise ValidationError(
            f"Team {team_id} does not belong to this leaderboard.",
            code="INVALID_TEAM",
            ids={"teamId": team_id},
        )


def _stored_goal(goal: MemberGoal | None) -> dict | None:
    return goal.model_dump(mode="json") if goal is not None else None


async def _ensure_not_last_owner(db: AsyncSession, member: LeaderboardMember) -> None:
    """Refuse a change that would drop the board's only owner."""
    if member.is_owner and await count_owners(db, member.leaderboard_id, exclude_member_id=member.id) == 0:
        raise ConflictError(
            "Cannot remove the last owner of this leaderboard.",
            code="LAST_OWNER",
            ids={"leaderboardId": member.leaderboard_id, "memberId": member.id},
        )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def add_owner_member(db: AsyncSession, leaderboard: Leaderboard, user_id: int) -> LeaderboardMember:
    """Membership for a board's creator: owner, not yet participating."""
    member = LeaderboardMember(
        leaderboard_id=leaderboard.id,
        user_id=user_id,
        is_owner=True,
        is_participant=False,
        state=State.ACTIVE,
        works=[],
        tags=[],
    )
    db.add(member)
    await db.flush()
    return member


async def join_leaderboard(
    db: AsyncSession,
    leaderboard: Leaderboard,
    user_id: int,
    data: JoinLeaderboardRequest,
) -> LeaderboardMember:
    """Join a board as a non-owner.

    Boards that are not joinable look absent, and so do private boards when
    the join code is missing or wrong.
    """
    if not leaderboard.is_joinable:
        raise NotFoundError("leaderboard", leaderboard.id)
    if not leaderboard.is_public and normalize_join_code(data.join_code or "") != leaderboard.join_code:
        raise NotFoundError("leaderboard", leaderboard.id)

    existing = await get_member_by_user(db, leaderboard.id, user_id)
    if existing is not None:
        raise ConflictError(
            "You have already joined this leaderboard.",
            code="ALREADY_MEMBER",
            ids={"leaderboardId": leaderboard.id, "memberId": existing.id},
        )

    await _check_team(db, leaderboard, data.team_id)
    works, tags = await resolve_scope_entities(db, user_id, data.work_ids, data.tag_ids)

    member = LeaderboardMember(
        leaderboard_id=leaderboard.id,
        user_id=user_id,
        is_owner=False,
        is_participant=data.is_participant,
        team_id=data.team_id,
        display_name=data.display_name,
        color=data.color,
        goal=_stored_goal(data.goal),
        state=State.ACTIVE,
        works=works,
        tags=tags,
    )
    db.add(member)
    await db.flush()
    logger.info("User %d joined leaderboard %d (member=%d)", user_id, leaderboard.id, member.id)
    return member


async def update_participation(
    db: AsyncSession,
    leaderboard: Leaderboard,
    user_id: int,
    data: UpdateParticipationRequest,
) -> LeaderboardMember:
    """Self-service update of the caller's own membership."""
    member = await get_member_by_user(db, leaderboard.id, user_id)
    if member is None:
        raise NotFoundError("member", user_id, id_field="user id")
    provided = data.model_fields_set

    if "team_id" in provided:
        await _check_team(db, leaderboard, data.team_id)
        member.team_id = data.team_id
    if "goal" in provided:
        member.goal = _stored_goal(data.goal)

    if data.work_ids is not None or data.tag_ids is not None:
        works, tags = await resolve_scope_entities(
            db, user_id,
            data.work_ids if data.work_ids is not None else member.work_ids,
            data.tag_ids if data.tag_ids is not None else member.tag_ids,
        )
        member.works = works
        member.tags = tags

    for field_name in ("is_participant", "display_name", "color", "starred"):
        value = getattr(data, field_name)
        if value is not None:
            setattr(member, field_name, value)

    await db.flush()
    logger.info("Member updated self: member=%d leaderboard=%d", member.id, leaderboard.id)
    return member


async def update_member_by_owner(
    db: AsyncSession,
    leaderboard: Leaderboard,
    acting_user_id: int,
    member_id: int,
    data: UpdateMemberRequest,
) -> LeaderboardMember:
    """Owners may change another member's role and team, nothing else."""
    await require_owner_member(db, leaderboard, acting_user_id)
    member = await require_member(db, leaderboard.id, member_id)
    provided = data.model_fields_set

    if data.is_owner is not None and data.is_owner != member.is_owner:
        if not data.is_owner:
            await _ensure_not_last_owner(db, member)
        member.is_owner = data.is_owner

    if "team_id" in provided:
        await _check_team(db, leaderboard, data.team_id)
        member.team_id = data.team_id

    await db.flush()
    logger.info(
        "Member updated by owner: member=%d leaderboard=%d by=%d",
        member.id, leaderboard.id, acting_user_id,
    )
    return member


async def _delete_member(db: AsyncSession, member: LeaderboardMember) -> None:
    await _ensure_not_last_owner(db, member)
    await db.delete(member)
    await db.flush()


async def leave_leaderboard(db: AsyncSession, leaderboard: Leaderboard, user_id: int) -> LeaderboardMember:
    member = await get_member_by_user(db, leaderboard.id, user_id)
    if member is None:
        raise NotFoundError("member", user_id, id_field="user id")
    await _delete_member(db, member)
    logger.info("User %d left leaderboard %d", user_id, leaderboard.id)
    return member


async def remove_member(
    db: AsyncSession,
    leaderboard: Leaderboard,
    acting_user_id: int,
    member_id: int,
) -> LeaderboardMember:
    """Owner removes a member. Removing yourself goes through the same owner check."""
    await require_owner_member(db, leaderboard, acting_user_id)
    member = await require_member(db, leaderboard.id, member_id)
    await _delete_member(db, member)
    logger.info("Member %d removed from leaderboard %d by user %d", member_id, leaderboard.id, acting_user_id)
    return member
