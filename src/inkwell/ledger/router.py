"""Tally endpoints."""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.constants import Measure
from inkwell.database import get_session
from inkwell.db.models import User
from inkwell.dependencies import get_acting_user
from inkwell.ledger.schemas import (
    BatchTallyItem,
    CreateTallyRequest,
    TallyQuery,
    TallyResponse,
    UpdateTallyRequest,
)
from inkwell.ledger.service import (
    append_tallies,
    append_tally,
    query_tallies,
    require_tally,
    retract_tally,
    revise_tally,
)
from inkwell.scope import ScopeFilter

router = APIRouter(prefix="/api/v1/tallies", tags=["Tallies"])


def _tally_query(
    works: list[int] = Query(default=[]),  # noqa: B008
    tags: list[int] = Query(default=[]),  # noqa: B008
    measure: Measure | None = Query(default=None),
    start_date: dt.date | None = Query(default=None, alias="startDate"),
    end_date: dt.date | None = Query(default=None, alias="endDate"),
) -> TallyQuery:
    return TallyQuery(works=works, tags=tags, measure=measure, start_date=start_date, end_date=end_date)


@router.get("", response_model=list[TallyResponse])
async def list_tallies_endpoint(
    query: TallyQuery = Depends(_tally_query),
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Tallies matching the filters. Order is not guaranteed."""
    scope = ScopeFilter.build(
        work_ids=query.works,
        tag_ids=query.tags,
        start_date=query.start_date,
        end_date=query.end_date,
        measures=[str(query.measure)] if query.measure is not None else None,
    )
    return await query_tallies(db, user.id, scope)


@router.post("", response_model=TallyResponse, status_code=201)
async def create_tally_endpoint(
    body: CreateTallyRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    tally = await append_tally(db, user.id, body)
    await db.commit()
    return tally


@router.post("/batch", response_model=list[TallyResponse], status_code=201)
async def create_tallies_batch_endpoint(
    body: list[BatchTallyItem],
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    tallies = await append_tallies(db, user.id, body)
    await db.commit()
    return tallies


@router.get("/{tally_id}", response_model=TallyResponse)
async def get_tally_endpoint(
    tally_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    return await require_tally(db, user.id, tally_id)


@router.patch("/{tally_id}", response_model=TallyResponse)
async def update_tally_endpoint(
    tally_id: int,
    body: UpdateTallyRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    tally = await revise_tally(db, user.id, tally_id, body)
    await db.commit()
    return tally


@router.delete("/{tally_id}", response_model=TallyResponse)
async def delete_tally_endpoint(
    tally_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    tally = await retract_tally(db, user.id, tally_id)
    await db.commit()
    return tally
