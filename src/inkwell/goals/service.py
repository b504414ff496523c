"""Goal business logic: CRUD plus live evaluation against the ledger."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.config import get_settings
from inkwell.constants import State
from inkwell.db.models import Goal
from inkwell.errors import NotFoundError, ValidationError
from inkwell.goals.evaluator import GoalEvaluation, evaluate_habit, evaluate_target
from inkwell.goals.schemas import (
    CreateGoalRequest,
    HabitParameters,
    TargetParameters,
    UpdateGoalRequest,
    parse_parameters,
)
from inkwell.ledger.service import query_tallies
from inkwell.scope import ScopeFilter, resolve_scope_entities

logger = logging.getLogger(__name__)


def _stored_parameters(parameters: TargetParameters | HabitParameters) -> dict:
    return parameters.model_dump(mode="json", exclude={"type"})


def _check_dates(start_date: date | None, end_date: date | None) -> None:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError("Goal start date must not be after its end date.", code="INVALID_DATE_RANGE")


async def list_goals(db: AsyncSession, owner_id: int) -> list[Goal]:
    result = await db.execute(
        select(Goal)
        .where(Goal.owner_id == owner_id, Goal.state == State.ACTIVE)
        .order_by(Goal.id)
    )
    return list(result.scalars().all())


async def get_goal(db: AsyncSession, owner_id: int, goal_id: int, state: str = State.ACTIVE) -> Goal | None:
    result = await db.execute(
        select(Goal).where(Goal.id == goal_id, Goal.owner_id == owner_id, Goal.state == state)
    )
    return result.scalar_one_or_none()


async def require_goal(db: AsyncSession, owner_id: int, goal_id: int, state: str = State.ACTIVE) -> Goal:
    goal = await get_goal(db, owner_id, goal_id, state)
    if goal is None:
        raise NotFoundError("goal", goal_id)
    return goal


async def create_goal(db: AsyncSession, owner_id: int, data: CreateGoalRequest) -> Goal:
    _check_dates(data.start_date, data.end_date)
    works, tags = await resolve_scope_entities(db, owner_id, data.work_ids, data.tag_ids)

    goal = Goal(
        owner_id=owner_id,
        title=data.title,
        description=data.description,
        type=data.parameters.type,
        parameters=_stored_parameters(data.parameters),
        start_date=data.start_date,
        end_date=data.end_date,
        starred=data.starred,
        display_on_profile=data.display_on_profile,
        state=State.ACTIVE,
        works=works,
        tags=tags,
    )
    db.add(goal)
    await db.flush()
    logger.info("Goal created: id=%d owner=%d type=%s", goal.id, owner_id, goal.type)
    return goal


async def update_goal(db: AsyncSession, owner_id: int, goal_id: int, data: UpdateGoalRequest) -> Goal:
    """Partial update. Sending `parameters` may switch the goal between target and habit."""
    goal = await require_goal(db, owner_id, goal_id)
    provided = data.model_fields_set

    start_date = data.start_date if "start_date" in provided else goal.start_date
    end_date = data.end_date if "end_date" in provided else goal.end_date
    _check_dates(start_date, end_date)
    goal.start_date = start_date
    goal.end_date = end_date

    if data.parameters is not None:
        goal.type = data.parameters.type
        goal.parameters = _stored_parameters(data.parameters)

    if data.work_ids is not None or data.tag_ids is not None:
        works, tags = await resolve_scope_entities(
            db, owner_id,
            data.work_ids if data.work_ids is not None else goal.work_ids,
            data.tag_ids if data.tag_ids is not None else goal.tag_ids,
        )
        goal.works = works
        goal.tags = tags

    for field_name in ("title", "description", "starred", "display_on_profile"):
        value = getattr(data, field_name)
        if value is not None:
            setattr(goal, field_name, value)

    await db.flush()
    logger.info("Goal updated: id=%d owner=%d", goal.id, owner_id)
    return goal


async def delete_goal(db: AsyncSession, owner_id: int, goal_id: int) -> Goal:
    goal = await require_goal(db, owner_id, goal_id)
    goal.state = State.DELETED
    await db.flush()
    logger.info("Goal deleted: id=%d owner=%d", goal.id, owner_id)
    return goal


async def undelete_goal(db: AsyncSession, owner_id: int, goal_id: int) -> Goal:
    goal = await require_goal(db, owner_id, goal_id, state=State.DELETED)
    goal.state = State.ACTIVE
    await db.flush()
    logger.info("Goal undeleted: id=%d owner=%d", goal.id, owner_id)
    return goal


def goal_scope(goal: Goal) -> ScopeFilter:
    """Ledger slice a goal counts: its works/tags, date window and threshold measure."""
    parameters = parse_parameters(goal.type, goal.parameters)
    threshold = parameters.threshold
    return ScopeFilter.build(
        work_ids=goal.work_ids,
        tag_ids=goal.tag_ids,
        start_date=goal.start_date,
        end_date=goal.end_date,
        measures=[str(threshold.measure)] if threshold is not None else None,
    )


async def evaluate_goal(db: AsyncSession, goal: Goal, today: date | None = None) -> GoalEvaluation:
    """Evaluate a goal against the current ledger. Never cached."""
    if today is None:
        today = date.today()

    tallies = await query_tallies(db, goal.owner_id, goal_scope(goal))
    parameters = parse_parameters(goal.type, goal.parameters)

    if isinstance(parameters, TargetParameters):
        return evaluate_target(parameters, tallies)
    return evaluate_habit(
        parameters,
        tallies,
        today,
        start_date=goal.start_date,
        end_date=goal.end_date,
        week_start_day=get_settings().week_start_day,
    )
