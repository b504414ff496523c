"""ORM models for the progress ledger, goals and leaderboards.

Scope filters (works/tags a goal or leaderboard member counts) are stored as
association tables so deleted tags drop out of the filter with them.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.constants import State, TAG_DEFAULT_COLOR, WorkPhase
from inkwell.db.base import Base, BigIntPK


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# ---------------------------------------------------------------------------
# Association tables
# ---------------------------------------------------------------------------

tally_tags = Table(
    "tally_tags",
    Base.metadata,
    Column("tally_id", BigIntPK, ForeignKey("tallies.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", BigIntPK, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

goal_works = Table(
    "goal_works",
    Base.metadata,
    Column("goal_id", BigIntPK, ForeignKey("goals.id", ondelete="CASCADE"), primary_key=True),
    Column("work_id", BigIntPK, ForeignKey("works.id", ondelete="CASCADE"), primary_key=True),
)

goal_tags = Table(
    "goal_tags",
    Base.metadata,
    Column("goal_id", BigIntPK, ForeignKey("goals.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", BigIntPK, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

member_works = Table(
    "leaderboard_member_works",
    Base.metadata,
    Column("member_id", BigIntPK, ForeignKey("leaderboard_members.id", ondelete="CASCADE"), primary_key=True),
    Column("work_id", BigIntPK, ForeignKey("works.id", ondelete="CASCADE"), primary_key=True),
)

member_tags = Table(
    "leaderboard_member_tags",
    Base.metadata,
    Column("member_id", BigIntPK, ForeignKey("leaderboard_members.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", BigIntPK, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Account row owned by the identity layer; read-only to the core."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=State.ACTIVE)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Works & tags
# ---------------------------------------------------------------------------


class Work(Base):
    """A writing project. Tallies and goals can be scoped to it."""

    __tablename__ = "works"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    phase: Mapped[str] = mapped_column(String(16), nullable=False, default=WorkPhase.PLANNING)
    starting_balance: Mapped[dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    starred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=State.ACTIVE)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class Tag(Base):
    """Owner-scoped label attached to tallies. Hard-deleted."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("owner_id", "name", name="tags_owner_name_key"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default=TAG_DEFAULT_COLOR)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Tallies
# ---------------------------------------------------------------------------


class Tally(Base):
    """One ledger entry. `count` is always a delta, never a running total."""

    __tablename__ = "tallies"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    work_id: Mapped[int | None] = mapped_column(BigIntPK, ForeignKey("works.id", ondelete="SET NULL"), nullable=True, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    measure: Mapped[str] = mapped_column(String(16), nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=State.ACTIVE)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    tags: Mapped[list[Tag]] = relationship("Tag", secondary=tally_tags, lazy="selectin")

    @property
    def tag_ids(self) -> list[int]:
        return sorted(tag.id for tag in self.tags)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


class Goal(Base):
    """Target or habit goal. `parameters` holds the type-specific shape."""

    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    parameters: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    start_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    starred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_on_profile: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=State.ACTIVE)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    works: Mapped[list[Work]] = relationship("Work", secondary=goal_works, lazy="selectin")
    tags: Mapped[list[Tag]] = relationship("Tag", secondary=goal_tags, lazy="selectin")

    @property
    def work_ids(self) -> list[int]:
        return sorted(work.id for work in self.works)

    @property
    def tag_ids(self) -> list[int]:
        return sorted(tag.id for tag in self.tags)


# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------


class Leaderboard(Base):
    """Shared board comparing members' progress."""

    __tablename__ = "leaderboards"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    measures: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    start_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    goal: Mapped[dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    individual_goal_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    fundraiser_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enable_teams: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_joinable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    join_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=State.ACTIVE)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class LeaderboardTeam(Base):
    __tablename__ = "leaderboard_teams"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    leaderboard_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("leaderboards.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class LeaderboardMember(Base):
    """One user's relationship to a leaderboard (role, participation, team, goal)."""

    __tablename__ = "leaderboard_members"
    __table_args__ = (UniqueConstraint("leaderboard_id", "user_id", name="leaderboard_members_board_user_key"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    leaderboard_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("leaderboards.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id: Mapped[int] = mapped_column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_owner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_participant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    team_id: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("leaderboard_teams.id", ondelete="SET NULL"), nullable=True,
    )
    display_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    color: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    goal: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    starred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=State.ACTIVE)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    works: Mapped[list[Work]] = relationship("Work", secondary=member_works, lazy="selectin")
    tags: Mapped[list[Tag]] = relationship("Tag", secondary=member_tags, lazy="selectin")
    user: Mapped[User] = relationship("User", lazy="selectin")

    @property
    def work_ids(self) -> list[int]:
        return sorted(work.id for work in self.works)

    @property
    def tag_ids(self) -> list[int]:
        return sorted(tag.id for tag in self.tags)
