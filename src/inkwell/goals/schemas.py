"""Pydantic schemas for goal endpoints.

Goal parameters are a tagged union on `type`: a target carries only a
threshold, a habit carries a cadence and an optional threshold.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from inkwell.constants import CadenceUnit, Measure


class Threshold(BaseModel):
    model_config = ConfigDict(extra="forbid")

    measure: Measure
    count: int


class Cadence(BaseModel):
    model_config = ConfigDict(extra="forbid")

    unit: CadenceUnit
    period: int = Field(1, ge=1)


class TargetParameters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["target"] = "target"
    threshold: Threshold


class HabitParameters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["habit"] = "habit"
    cadence: Cadence
    threshold: Threshold | None = None


GoalParameters = Annotated[Union[TargetParameters, HabitParameters], Field(discriminator="type")]

_parameters_adapter: TypeAdapter[TargetParameters | HabitParameters] = TypeAdapter(GoalParameters)


def parse_parameters(goal_type: str, raw: dict[str, Any]) -> TargetParameters | HabitParameters:
    """Rebuild typed parameters from the stored JSON and goal type column."""
    return _parameters_adapter.validate_python({**raw, "type": goal_type})


class CreateGoalRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=256)
    description: str = ""
    parameters: GoalParameters
    work_ids: list[int] = []
    tag_ids: list[int] = []
    start_date: date | None = None
    end_date: date | None = None
    starred: bool = False
    display_on_profile: bool = False


class UpdateGoalRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=256)
    description: str | None = None
    parameters: GoalParameters | None = None
    work_ids: list[int] | None = None
    tag_ids: list[int] | None = None
    start_date: date | None = None
    end_date: date | None = None
    starred: bool | None = None
    display_on_profile: bool | None = None


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    title: str
    description: str
    type: str
    parameters: dict[str, Any]
    work_ids: list[int]
    tag_ids: list[int]
    start_date: date | None
    end_date: date | None
    starred: bool
    display_on_profile: bool
    state: str


class HabitWindowResponse(BaseModel):
    start_date: date
    end_date: date
    total: int
    achieved: bool


class GoalEvaluationResponse(BaseModel):
    progress: dict[str, int]
    achieved: bool
    windows: list[HabitWindowResponse] = []
    current_streak: int = 0
    longest_streak: int = 0


class GoalWithEvaluationResponse(BaseModel):
    goal: GoalResponse
    evaluation: GoalEvaluationResponse
