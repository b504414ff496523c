"""Leaderboard endpoints.

Board CRUD, teams, owner-side member management, the caller's own
participation (`/me`) and the ranked standings (`/participants`).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.database import get_session
from inkwell.db.models import User
from inkwell.dependencies import get_acting_user
from inkwell.errors import NotFoundError
from inkwell.leaderboards.aggregator import Standings, aggregate_leaderboard
from inkwell.leaderboards.membership import (
    join_leaderboard,
    leave_leaderboard,
    list_members,
    remove_member,
    require_member,
    require_owner_member,
    update_member_by_owner,
    update_participation,
)
from inkwell.leaderboards.schemas import (
    CreateLeaderboardRequest,
    CreateTeamRequest,
    JoinLeaderboardRequest,
    LeaderboardListItem,
    LeaderboardResponse,
    MemberResponse,
    ParticipantStandingResponse,
    ParticipationResponse,
    StandingsResponse,
    StarRequest,
    StarResponse,
    TeamResponse,
    TeamStandingResponse,
    UpdateLeaderboardRequest,
    UpdateMemberRequest,
    UpdateParticipationRequest,
    UpdateTeamRequest,
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
from inkwell.leaderboards.teams import create_team, delete_team, list_teams, require_team, update_team

router = APIRouter(prefix="/api/v1/leaderboards", tags=["Leaderboards"])


# ── Helper ──


def _build_standings_response(standings: Standings) -> StandingsResponse:
    return StandingsResponse(
        participants=[
            ParticipantStandingResponse(
                rank=p.rank,
                member_id=p.member_id,
                user_id=p.user_id,
                display_name=p.display_name,
                color=p.color,
                team_id=p.team_id,
                progress=p.progress,
                percent=p.percent,
                goal=p.goal,
            )
            for p in standings.participants
        ],
        teams=None if standings.teams is None else [
            TeamStandingResponse(
                rank=t.rank,
                team_id=t.team_id,
                name=t.name,
                color=t.color,
                member_ids=t.member_ids,
                progress=t.progress,
                percent=t.percent,
            )
            for t in standings.teams
        ],
        total=standings.total,
        total_percent=standings.total_percent,
    )


# ── Boards ──


@router.get("", response_model=list[LeaderboardListItem])
async def list_leaderboards_endpoint(
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Boards the caller is a member of."""
    rows = await list_leaderboards(db, user.id)
    return [
        LeaderboardListItem(
            leaderboard=LeaderboardResponse.model_validate(leaderboard),
            is_owner=member.is_owner,
            is_participant=member.is_participant,
            starred=member.starred,
        )
        for leaderboard, member in rows
    ]


@router.post("", response_model=LeaderboardResponse, status_code=201)
async def create_leaderboard_endpoint(
    body: CreateLeaderboardRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard = await create_leaderboard(db, user.id, body)
    await db.commit()
    return leaderboard


@router.get("/joincode/{join_code}", response_model=LeaderboardResponse)
async def get_by_join_code_endpoint(
    join_code: str,
    _user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    return await get_by_join_code(db, join_code)


@router.get("/{leaderboard_id}", response_model=LeaderboardResponse)
async def get_leaderboard_endpoint(
    leaderboard_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    return leaderboard


@router.patch("/{leaderboard_id}", response_model=LeaderboardResponse)
async def update_leaderboard_endpoint(
    leaderboard_id: int,
    body: UpdateLeaderboardRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Change board settings (owners only)."""
    leaderboard = await update_leaderboard(db, leaderboard_id, user.id, body)
    await db.commit()
    return leaderboard


@router.delete("/{leaderboard_id}", response_model=LeaderboardResponse)
async def delete_leaderboard_endpoint(
    leaderboard_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard = await delete_leaderboard(db, leaderboard_id, user.id)
    await db.commit()
    return leaderboard


@router.put("/{leaderboard_id}/star", response_model=StarResponse)
async def star_leaderboard_endpoint(
    leaderboard_id: int,
    body: StarRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    member = await star_leaderboard(db, leaderboard_id, user.id, body.starred)
    await db.commit()
    return StarResponse(starred=member.starred)


@router.get("/{leaderboard_id}/participants", response_model=StandingsResponse)
async def get_standings_endpoint(
    leaderboard_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Ranked participants (and teams, and the fundraiser pool when enabled)."""
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    standings = await aggregate_leaderboard(db, leaderboard)
    return _build_standings_response(standings)


# ── Teams ──


@router.get("/{leaderboard_id}/teams", response_model=list[TeamResponse])
async def list_teams_endpoint(
    leaderboard_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    return await list_teams(db, leaderboard.id)


@router.post("/{leaderboard_id}/teams", response_model=TeamResponse, status_code=201)
async def create_team_endpoint(
    leaderboard_id: int,
    body: CreateTeamRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    team = await create_team(db, leaderboard, user.id, body)
    await db.commit()
    return team


@router.get("/{leaderboard_id}/teams/{team_id}", response_model=TeamResponse)
async def get_team_endpoint(
    leaderboard_id: int,
    team_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    return await require_team(db, leaderboard.id, team_id)


@router.patch("/{leaderboard_id}/teams/{team_id}", response_model=TeamResponse)
async def update_team_endpoint(
    leaderboard_id: int,
    team_id: int,
    body: UpdateTeamRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    team = await update_team(db, leaderboard, user.id, team_id, body)
    await db.commit()
    return team


@router.delete("/{leaderboard_id}/teams/{team_id}", response_model=TeamResponse)
async def delete_team_endpoint(
    leaderboard_id: int,
    team_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Delete a team; its members stay on the board without a team."""
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    team = await delete_team(db, leaderboard, user.id, team_id)
    await db.commit()
    return team


# ── Members (owner side) ──


@router.get("/{leaderboard_id}/members", response_model=list[MemberResponse])
async def list_members_endpoint(
    leaderboard_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    await require_owner_member(db, leaderboard, user.id)
    return await list_members(db, leaderboard.id)


@router.get("/{leaderboard_id}/members/{member_id}", response_model=MemberResponse)
async def get_member_endpoint(
    leaderboard_id: int,
    member_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    await require_owner_member(db, leaderboard, user.id)
    return await require_member(db, leaderboard.id, member_id)


@router.patch("/{leaderboard_id}/members/{member_id}", response_model=MemberResponse)
async def update_member_endpoint(
    leaderboard_id: int,
    member_id: int,
    body: UpdateMemberRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Promote, demote or reassign a member (owners only)."""
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    member = await update_member_by_owner(db, leaderboard, user.id, member_id, body)
    await db.commit()
    return member


@router.delete("/{leaderboard_id}/members/{member_id}", response_model=MemberResponse)
async def remove_member_endpoint(
    leaderboard_id: int,
    member_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    member = await remove_member(db, leaderboard, user.id, member_id)
    await db.commit()
    return member


# ── My participation ──


@router.get("/{leaderboard_id}/me", response_model=ParticipationResponse)
async def get_my_participation_endpoint(
    leaderboard_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    _leaderboard, member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    if member is None:
        raise NotFoundError("member", user.id, id_field="user id")
    return member


@router.post("/{leaderboard_id}/me", response_model=ParticipationResponse, status_code=201)
async def join_leaderboard_endpoint(
    leaderboard_id: int,
    body: JoinLeaderboardRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Join a joinable board."""
    leaderboard = await require_joinable_leaderboard(db, leaderboard_id)
    member = await join_leaderboard(db, leaderboard, user.id, body)
    await db.commit()
    return member


@router.patch("/{leaderboard_id}/me", response_model=ParticipationResponse)
async def update_my_participation_endpoint(
    leaderboard_id: int,
    body: UpdateParticipationRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    member = await update_participation(db, leaderboard, user.id, body)
    await db.commit()
    return member


@router.delete("/{leaderboard_id}/me", response_model=ParticipationResponse)
async def leave_leaderboard_endpoint(
    leaderboard_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    leaderboard, _member = await get_visible_leaderboard(db, leaderboard_id, user.id)
    member = await leave_leaderboard(db, leaderboard, user.id)
    await db.commit()
    return member
