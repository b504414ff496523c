"""Leaderboard membership state machine: roles, joining, leaving, teams, visibility."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.constants import State
from inkwell.db.models import Leaderboard, LeaderboardMember, User
from inkwell.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from inkwell.leaderboards.membership import (
    get_member_by_user,
    join_leaderboard,
    leave_leaderboard,
    list_members,
    remove_member,
    update_member_by_owner,
    update_participation,
)
from inkwell.leaderboards.schemas import (
    CreateLeaderboardRequest,
    CreateTeamRequest,
    JoinLeaderboardRequest,
    UpdateLeaderboardRequest,
    UpdateMemberRequest,
    UpdateParticipationRequest,
)
from inkwell.leaderboards.service import (
    create_leaderboard,
    delete_leaderboard,
    get_by_join_code,
    get_visible_leaderboard,
    list_leaderboards,
    require_joinable_leaderboard,
    star_leaderboard,
    update_leaderboard,
)
from inkwell.leaderboards.teams import create_team, delete_team


async def _create_user(db: AsyncSession, username: str) -> User:
    user = User(username=username, display_name=username)
    db.add(user)
    await db.flush()
    return user


async def _board(db: AsyncSession, owner: User, **kwargs) -> Leaderboard:
    fields = {"title": "November", "measures": ["word"], "goal": {"word": 50000}, "is_joinable": True}
    fields.update(kwargs)
    return await create_leaderboard(db, owner.id, CreateLeaderboardRequest(**fields))


async def _join(db: AsyncSession, board: Leaderboard, user: User, **fields) -> LeaderboardMember:
    """Join with the board's code, as an invited writer would."""
    request = JoinLeaderboardRequest(join_code=board.join_code, **fields)
    return await join_leaderboard(db, board, user.id, request)


class TestCreation:
    @pytest.mark.asyncio
    async def test_creator_is_sole_owner(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner)

        [member] = await list_members(db_session, board.id)
        assert member.user_id == owner.id
        assert member.is_owner
        assert not member.is_participant

    @pytest.mark.asyncio
    async def test_join_codes_are_unique(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        first = await _board(db_session, owner)
        second = await _board(db_session, owner)
        assert first.join_code != second.join_code

    @pytest.mark.asyncio
    async def test_lookup_by_join_code_is_case_insensitive(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner)

        found = await get_by_join_code(db_session, f"  {board.join_code.lower()} ")
        assert found.id == board.id
        with pytest.raises(NotFoundError):
            await get_by_join_code(db_session, "NOPE")

    @pytest.mark.asyncio
    async def test_individual_mode_clears_shared_goal(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner, individual_goal_mode=True, fundraiser_mode=True)
        assert board.goal == {}
        assert board.measures == []
        assert not board.fundraiser_mode

    @pytest.mark.asyncio
    async def test_switching_to_individual_mode_on_update(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner, fundraiser_mode=True)

        updated = await update_leaderboard(
            db_session, board.id, owner.id, UpdateLeaderboardRequest(individual_goal_mode=True),
        )
        assert updated.goal == {}
        assert updated.measures == []
        assert not updated.fundraiser_mode


class TestJoining:
    @pytest.mark.asyncio
    async def test_join_as_participant(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner)

        member = await _join(db_session, board, writer, display_name="W")
        assert member.is_participant
        assert not member.is_owner
        assert [m.user_id for m in await list_members(db_session, board.id, participants_only=True)] == [writer.id]

    @pytest.mark.asyncio
    async def test_duplicate_join_conflicts(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner)
        await _join(db_session, board, writer)

        with pytest.raises(ConflictError) as exc_info:
            await _join(db_session, board, writer)
        assert exc_info.value.code == "ALREADY_MEMBER"

    @pytest.mark.asyncio
    async def test_not_joinable_looks_absent(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner, is_joinable=False)
        with pytest.raises(NotFoundError):
            await require_joinable_leaderboard(db_session, board.id)

    @pytest.mark.asyncio
    async def test_leave_then_rejoin(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner)
        first = await _join(db_session, board, writer)

        await leave_leaderboard(db_session, board, writer.id)
        assert await get_member_by_user(db_session, board.id, writer.id) is None

        assert first.is_participant

        second = await _join(db_session, board, writer)
        assert not second.is_owner
        assert second.state == State.ACTIVE
        rejoined = await get_member_by_user(db_session, board.id, writer.id)
        assert rejoined is second

    @pytest.mark.asyncio
    async def test_private_board_needs_join_code(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        stranger = await _create_user(db_session, "stranger")
        board = await _board(db_session, owner)

        with pytest.raises(NotFoundError):
            await join_leaderboard(db_session, board, stranger.id, JoinLeaderboardRequest())
        with pytest.raises(NotFoundError):
            await join_leaderboard(db_session, board, stranger.id, JoinLeaderboardRequest(join_code="WRONGCODE"))
        assert await get_member_by_user(db_session, board.id, stranger.id) is None

        member = await join_leaderboard(
            db_session, board, stranger.id, JoinLeaderboardRequest(join_code=board.join_code.lower()),
        )
        assert member.user_id == stranger.id

    @pytest.mark.asyncio
    async def test_public_board_joinable_without_code(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner, is_public=True)

        member = await join_leaderboard(db_session, board, writer.id, JoinLeaderboardRequest())
        assert member.is_participant

    @pytest.mark.asyncio
    async def test_team_must_belong_to_board(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner, enable_teams=True)
        other_board = await _board(db_session, owner, enable_teams=True)
        foreign_team = await create_team(db_session, other_board, owner.id, CreateTeamRequest(name="Elsewhere"))

        with pytest.raises(ValidationError) as exc_info:
            await _join(db_session, board, writer, team_id=foreign_team.id)
        assert exc_info.value.code == "INVALID_TEAM"

    @pytest.mark.asyncio
    async def test_scope_must_be_own_works(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner)

        with pytest.raises(ValidationError) as exc_info:
            await _join(db_session, board, writer, work_ids=[12345])
        assert exc_info.value.code == "INVALID_SCOPE"


class TestOwnership:
    @pytest.mark.asyncio
    async def test_last_owner_cannot_leave(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner)

        with pytest.raises(ConflictError) as exc_info:
            await leave_leaderboard(db_session, board, owner.id)
        assert exc_info.value.code == "LAST_OWNER"
        assert len(await list_members(db_session, board.id)) == 1

    @pytest.mark.asyncio
    async def test_last_owner_cannot_be_demoted(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner)
        member = await get_member_by_user(db_session, board.id, owner.id)

        with pytest.raises(ConflictError):
            await update_member_by_owner(db_session, board, owner.id, member.id, UpdateMemberRequest(is_owner=False))

    @pytest.mark.asyncio
    async def test_one_of_two_owners_can_leave(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        cohost = await _create_user(db_session, "cohost")
        board = await _board(db_session, owner)
        joined = await _join(db_session, board, cohost)

        promoted = await update_member_by_owner(
            db_session, board, owner.id, joined.id, UpdateMemberRequest(is_owner=True),
        )
        assert promoted.is_owner

        await leave_leaderboard(db_session, board, owner.id)
        [remaining] = await list_members(db_session, board.id)
        assert remaining.user_id == cohost.id
        assert remaining.is_owner

    @pytest.mark.asyncio
    async def test_owner_with_deleted_account_does_not_count(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        cohost = await _create_user(db_session, "cohost")
        board = await _board(db_session, owner)
        joined = await _join(db_session, board, cohost)
        await update_member_by_owner(db_session, board, owner.id, joined.id, UpdateMemberRequest(is_owner=True))

        cohost.state = State.DELETED
        await db_session.flush()

        with pytest.raises(ConflictError) as exc_info:
            await leave_leaderboard(db_session, board, owner.id)
        assert exc_info.value.code == "LAST_OWNER"
        [remaining] = await list_members(db_session, board.id)
        assert remaining.user_id == owner.id

    @pytest.mark.asyncio
    async def test_owner_removes_member(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner)
        member = await _join(db_session, board, writer)

        await remove_member(db_session, board, owner.id, member.id)
        assert await get_member_by_user(db_session, board.id, writer.id) is None

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner)
        await _join(db_session, board, writer)
        owner_member = await get_member_by_user(db_session, board.id, owner.id)

        with pytest.raises(ForbiddenError) as exc_info:
            await remove_member(db_session, board, writer.id, owner_member.id)
        assert exc_info.value.code == "NOT_OWNER"
        with pytest.raises(ForbiddenError):
            await update_leaderboard(db_session, board.id, writer.id, UpdateLeaderboardRequest(title="Mine"))
        with pytest.raises(ForbiddenError):
            await delete_leaderboard(db_session, board.id, writer.id)


class TestVisibility:
    @pytest.mark.asyncio
    async def test_private_board_hidden_from_outsiders(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        outsider = await _create_user(db_session, "outsider")
        board = await _board(db_session, owner)

        with pytest.raises(NotFoundError):
            await get_visible_leaderboard(db_session, board.id, outsider.id)

    @pytest.mark.asyncio
    async def test_public_board_visible_without_membership(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        outsider = await _create_user(db_session, "outsider")
        board = await _board(db_session, owner, is_public=True)

        found, member = await get_visible_leaderboard(db_session, board.id, outsider.id)
        assert found.id == board.id
        assert member is None

    @pytest.mark.asyncio
    async def test_deleted_board_gone(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner)

        await delete_leaderboard(db_session, board.id, owner.id)
        with pytest.raises(NotFoundError):
            await get_visible_leaderboard(db_session, board.id, owner.id)
        assert await list_leaderboards(db_session, owner.id) == []


class TestParticipation:
    @pytest.mark.asyncio
    async def test_owner_starts_participating(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner)

        member = await update_participation(
            db_session, board, owner.id, UpdateParticipationRequest(is_participant=True, display_name="Host"),
        )
        assert member.is_participant
        assert member.is_owner
        assert member.display_name == "Host"

    @pytest.mark.asyncio
    async def test_explicit_null_clears_goal(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner, individual_goal_mode=True)
        await _join(db_session, board, writer, goal={"measure": "word", "count": 1000})

        kept = await update_participation(db_session, board, writer.id, UpdateParticipationRequest(color="red"))
        assert kept.goal == {"measure": "word", "count": 1000}

        cleared = await update_participation(db_session, board, writer.id, UpdateParticipationRequest(goal=None))
        assert cleared.goal is None

    @pytest.mark.asyncio
    async def test_star_is_per_member(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner, is_public=True)
        await _join(db_session, board, writer)

        starred = await star_leaderboard(db_session, board.id, writer.id, True)
        assert starred.starred
        owner_member = await get_member_by_user(db_session, board.id, owner.id)
        assert not owner_member.starred

    @pytest.mark.asyncio
    async def test_star_requires_membership(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        outsider = await _create_user(db_session, "outsider")
        board = await _board(db_session, owner, is_public=True)

        with pytest.raises(NotFoundError):
            await star_leaderboard(db_session, board.id, outsider.id, True)

    @pytest.mark.asyncio
    async def test_list_includes_role_flags(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner)
        await _join(db_session, board, writer)

        [(listed, member)] = await list_leaderboards(db_session, writer.id)
        assert listed.id == board.id
        assert member.is_participant
        assert not member.is_owner


class TestTeams:
    @pytest.mark.asyncio
    async def test_deleting_team_unassigns_members(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner, enable_teams=True)
        team = await create_team(db_session, board, owner.id, CreateTeamRequest(name="Owls"))
        member = await _join(db_session, board, writer, team_id=team.id)
        assert member.team_id == team.id

        await delete_team(db_session, board, owner.id, team.id)
        refreshed = await get_member_by_user(db_session, board.id, writer.id)
        assert refreshed.team_id is None

    @pytest.mark.asyncio
    async def test_only_owners_manage_teams(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        writer = await _create_user(db_session, "writer")
        board = await _board(db_session, owner, enable_teams=True)
        await _join(db_session, board, writer)

        with pytest.raises(ForbiddenError):
            await create_team(db_session, board, writer.id, CreateTeamRequest(name="Mine"))
