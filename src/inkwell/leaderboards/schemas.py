"""Pydantic schemas for leaderboard endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from inkwell.constants import Measure


# --- Leaderboard ---


class CreateLeaderboardRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=256)
    description: str = ""
    measures: list[Measure] = []
    start_date: date | None = None
    end_date: date | None = None
    goal: dict[Measure, int] = {}
    individual_goal_mode: bool = False
    fundraiser_mode: bool = False
    enable_teams: bool = False
    is_joinable: bool = False
    is_public: bool = False


class UpdateLeaderboardRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=256)
    description: str | None = None
    measures: list[Measure] | None = None
    start_date: date | None = None
    end_date: date | None = None
    goal: dict[Measure, int] | None = None
    individual_goal_mode: bool | None = None
    fundraiser_mode: bool | None = None
    enable_teams: bool | None = None
    is_joinable: bool | None = None
    is_public: bool | None = None


class StarRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    starred: bool


class StarResponse(BaseModel):
    starred: bool


class LeaderboardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    title: str
    description: str
    measures: list[str]
    start_date: date | None
    end_date: date | None
    goal: dict[str, int]
    individual_goal_mode: bool
    fundraiser_mode: bool
    enable_teams: bool
    is_joinable: bool
    is_public: bool
    join_code: str
    state: str
    created_at: datetime
    updated_at: datetime


class LeaderboardListItem(BaseModel):
    """A board as seen by one of its members."""

    leaderboard: LeaderboardResponse
    is_owner: bool
    is_participant: bool
    starred: bool


# --- Teams ---


class CreateTeamRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=128)
    color: str = Field("", max_length=32)


class UpdateTeamRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=128)
    color: str | None = Field(None, max_length=32)


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    leaderboard_id: int
    name: str
    color: str


# --- Membership ---


class MemberGoal(BaseModel):
    """Personal goal, only counted in individual-goal mode."""

    model_config = ConfigDict(extra="forbid")

    measure: Measure
    count: int


class JoinLeaderboardRequest(BaseModel):
    """Joining a private board needs its join code; public boards do not."""

    model_config = ConfigDict(extra="forbid")

    join_code: str | None = Field(None, max_length=32)
    is_participant: bool = True
    goal: MemberGoal | None = None
    work_ids: list[int] = []
    tag_ids: list[int] = []
    team_id: int | None = None
    display_name: str = Field("", max_length=64)
    color: str = Field("", max_length=32)


class UpdateParticipationRequest(BaseModel):
    """Self-service fields. Omitted fields keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    is_participant: bool | None = None
    goal: MemberGoal | None = None
    work_ids: list[int] | None = None
    tag_ids: list[int] | None = None
    team_id: int | None = None
    display_name: str | None = Field(None, max_length=64)
    color: str | None = Field(None, max_length=32)
    starred: bool | None = None


class UpdateMemberRequest(BaseModel):
    """Fields an owner may change on another member."""

    model_config = ConfigDict(extra="forbid")

    is_owner: bool | None = None
    team_id: int | None = None


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    leaderboard_id: int
    user_id: int
    is_owner: bool
    is_participant: bool
    team_id: int | None
    display_name: str
    color: str
    created_at: datetime


class ParticipationResponse(MemberResponse):
    """The caller's own membership, including their private settings."""

    goal: MemberGoal | None
    work_ids: list[int]
    tag_ids: list[int]
    starred: bool


# --- Standings ---


class ParticipantStandingResponse(BaseModel):
    rank: int
    member_id: int
    user_id: int
    display_name: str
    color: str
    team_id: int | None
    progress: dict[str, int]
    percent: float | None
    goal: dict[str, int] | None = None


class TeamStandingResponse(BaseModel):
    rank: int
    team_id: int
    name: str
    color: str
    member_ids: list[int]
    progress: dict[str, int]
    percent: float | None


class StandingsResponse(BaseModel):
    participants: list[ParticipantStandingResponse]
    teams: list[TeamStandingResponse] | None = None
    total: dict[str, int] | None = None
    total_percent: float | None = None
