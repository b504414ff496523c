"""Work endpoints: CRUD plus undelete."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.database import get_session
from inkwell.db.models import User
from inkwell.dependencies import get_acting_user
from inkwell.works.schemas import CreateWorkRequest, UpdateWorkRequest, WorkResponse
from inkwell.works.service import (
    create_work,
    delete_work,
    list_works,
    require_work,
    undelete_work,
    update_work,
)

router = APIRouter(prefix="/api/v1/works", tags=["Works"])


@router.get("", response_model=list[WorkResponse])
async def list_works_endpoint(
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    return await list_works(db, user.id)


@router.post("", response_model=WorkResponse, status_code=201)
async def create_work_endpoint(
    body: CreateWorkRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    work = await create_work(db, user.id, body)
    await db.commit()
    return work


@router.get("/{work_id}", response_model=WorkResponse)
async def get_work_endpoint(
    work_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    return await require_work(db, user.id, work_id)


@router.patch("/{work_id}", response_model=WorkResponse)
async def update_work_endpoint(
    work_id: int,
    body: UpdateWorkRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    work = await update_work(db, user.id, work_id, body)
    await db.commit()
    return work


@router.delete("/{work_id}", response_model=WorkResponse)
async def delete_work_endpoint(
    work_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Soft-delete a work together with its tallies."""
    work = await delete_work(db, user.id, work_id)
    await db.commit()
    return work


@router.post("/{work_id}/undelete", response_model=WorkResponse)
async def undelete_work_endpoint(
    work_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    work = await undelete_work(db, user.id, work_id)
    await db.commit()
    return work
