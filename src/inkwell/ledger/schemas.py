"""Pydantic schemas for tally endpoints."""

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from inkwell.constants import Measure


class CreateTallyRequest(BaseModel):
    """A tally submission. With `set_total`, `count` is the running total as of `date`."""

    model_config = ConfigDict(extra="forbid")

    date: dt.date
    measure: Measure
    count: int
    set_total: bool = False
    note: str = ""
    work_id: int | None = None
    tags: list[str] = Field(default_factory=list)


class BatchTallyItem(BaseModel):
    """Bulk-import entry: plain deltas only, no set-total and no tags."""

    model_config = ConfigDict(extra="forbid")

    date: dt.date
    measure: Measure
    count: int
    set_total: Literal[False] = False
    note: str = ""
    work_id: int | None = None
    tags: list[str] = Field(default_factory=list, max_length=0)


class UpdateTallyRequest(BaseModel):
    """Partial update. Omitted fields keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    date: dt.date | None = None
    measure: Measure | None = None
    count: int | None = None
    set_total: bool = False
    note: str | None = None
    work_id: int | None = None
    tags: list[str] | None = None


class TallyQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")

    works: list[int] = []
    tags: list[int] = []
    measure: Measure | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None


class TallyTagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str


class TallyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    work_id: int | None
    date: dt.date
    measure: str
    count: int
    note: str
    tags: list[TallyTagResponse]
    created_at: dt.datetime
    updated_at: dt.datetime
