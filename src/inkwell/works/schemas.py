"""Pydantic schemas for work endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from inkwell.constants import Measure, WorkPhase


class CreateWorkRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=256)
    description: str = ""
    phase: WorkPhase = WorkPhase.PLANNING
    starting_balance: dict[Measure, int] = {}
    starred: bool = False


class UpdateWorkRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=256)
    description: str | None = None
    phase: WorkPhase | None = None
    starting_balance: dict[Measure, int] | None = None
    starred: bool | None = None


class WorkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    title: str
    description: str
    phase: str
    starting_balance: dict[str, int]
    starred: bool
    state: str
    created_at: datetime
    updated_at: datetime
