"""Enumerated values shared across the ledger, goals and leaderboards."""

from __future__ import annotations

from enum import StrEnum


class State(StrEnum):
    """Lifecycle state for soft-deletable rows."""

    ACTIVE = "active"
    DELETED = "deleted"


class Measure(StrEnum):
    """Units progress is counted in. TIME is always minutes."""

    WORD = "word"
    TIME = "time"
    PAGE = "page"
    CHAPTER = "chapter"
    SCENE = "scene"
    LINE = "line"


class WorkPhase(StrEnum):
    PLANNING = "planning"
    OUTLINING = "outlining"
    DRAFTING = "drafting"
    REVISING = "revising"
    ON_HOLD = "on hold"
    FINISHED = "finished"
    ABANDONED = "abandoned"


class CadenceUnit(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


TAG_DEFAULT_COLOR = "default"
