"""Goal endpoints. Reading a goal always returns it with a live evaluation."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.database import get_session
from inkwell.db.models import Goal, User
from inkwell.dependencies import get_acting_user
from inkwell.goals.evaluator import GoalEvaluation
from inkwell.goals.schemas import (
    CreateGoalRequest,
    GoalEvaluationResponse,
    GoalResponse,
    GoalWithEvaluationResponse,
    HabitWindowResponse,
    UpdateGoalRequest,
)
from inkwell.goals.service import (
    create_goal,
    delete_goal,
    evaluate_goal,
    list_goals,
    require_goal,
    undelete_goal,
    update_goal,
)

router = APIRouter(prefix="/api/v1/goals", tags=["Goals"])


def _build_evaluation_response(evaluation: GoalEvaluation) -> GoalEvaluationResponse:
    return GoalEvaluationResponse(
        progress=evaluation.progress,
        achieved=evaluation.achieved,
        windows=[
            HabitWindowResponse(
                start_date=window.start_date,
                end_date=window.end_date,
                total=window.total,
                achieved=window.achieved,
            )
            for window in evaluation.windows
        ],
        current_streak=evaluation.current_streak,
        longest_streak=evaluation.longest_streak,
    )


async def _with_evaluation(db: AsyncSession, goal: Goal) -> GoalWithEvaluationResponse:
    evaluation = await evaluate_goal(db, goal)
    return GoalWithEvaluationResponse(
        goal=GoalResponse.model_validate(goal),
        evaluation=_build_evaluation_response(evaluation),
    )


@router.get("", response_model=list[GoalResponse])
async def list_goals_endpoint(
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    return await list_goals(db, user.id)


@router.post("", response_model=GoalWithEvaluationResponse, status_code=201)
async def create_goal_endpoint(
    body: CreateGoalRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    goal = await create_goal(db, user.id, body)
    await db.commit()
    return await _with_evaluation(db, goal)


@router.get("/{goal_id}", response_model=GoalWithEvaluationResponse)
async def get_goal_endpoint(
    goal_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    goal = await require_goal(db, user.id, goal_id)
    return await _with_evaluation(db, goal)


@router.patch("/{goal_id}", response_model=GoalWithEvaluationResponse)
async def update_goal_endpoint(
    goal_id: int,
    body: UpdateGoalRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    goal = await update_goal(db, user.id, goal_id, body)
    await db.commit()
    return await _with_evaluation(db, goal)


@router.delete("/{goal_id}", response_model=GoalResponse)
async def delete_goal_endpoint(
    goal_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    goal = await delete_goal(db, user.id, goal_id)
    await db.commit()
    return goal


@router.post("/{goal_id}/undelete", response_model=GoalWithEvaluationResponse)
async def undelete_goal_endpoint(
    goal_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    goal = await undelete_goal(db, user.id, goal_id)
    await db.commit()
    return await _with_evaluation(db, goal)
