"""Pydantic schemas for tag endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TagColor = Literal[
    "default", "red", "orange", "yellow", "green", "blue",
    "purple", "brown", "white", "black", "gray",
]


class CreateTagRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=128)
    color: TagColor = "default"


class UpdateTagRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=128)
    color: TagColor | None = None


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    color: str
