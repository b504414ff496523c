"""Tally ledger: append, revise, retract and query progress entries.

Stored counts are always deltas. A submission with `set_total` carries the
writer's running total for a work as of a date; the ledger converts it to a
delta against everything already recorded up to and including that date
(same-day entries count as prior), plus the work's starting balance.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.constants import State
from inkwell.db.models import Tally
from inkwell.errors import NotFoundError, ValidationError
from inkwell.ledger.schemas import BatchTallyItem, CreateTallyRequest, UpdateTallyRequest
from inkwell.scope import ScopeFilter, scoped_tallies_query
from inkwell.tags.service import find_or_create_tags
from inkwell.works.service import get_work

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_tally(db: AsyncSession, owner_id: int, tally_id: int) -> Tally | None:
    result = await db.execute(
        select(Tally).where(
            Tally.id == tally_id,
            Tally.owner_id == owner_id,
            Tally.state == State.ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def require_tally(db: AsyncSession, owner_id: int, tally_id: int) -> Tally:
    tally = await get_tally(db, owner_id, tally_id)
    if tally is None:
        raise NotFoundError("tally", tally_id)
    return tally


async def query_tallies(db: AsyncSession, owner_id: int, scope: ScopeFilter) -> list[Tally]:
    """Active tallies of one owner within a scope. Order is not guaranteed."""
    result = await db.execute(scoped_tallies_query(owner_id, scope))
    return list(result.scalars().all())


def sum_tallies(tallies: Iterable[Tally], starting_balance: Mapping[str, int] | None = None) -> dict[str, int]:
    """Sum counts per measure, on top of an optional starting balance."""
    totals: dict[str, int] = dict(starting_balance or {})
    for tally in tallies:
        totals[tally.measure] = totals.get(tally.measure, 0) + tally.count
    return totals


# ---------------------------------------------------------------------------
# Set-total reconciliation
# ---------------------------------------------------------------------------


async def reconcile_total(
    db: AsyncSession,
    owner_id: int,
    work_id: int | None,
    measure: str,
    on_date: date,
    total: int,
    exclude_tally_id: int | None = None,
) -> int:
    """Convert a running total into the delta to store.

    delta = total - (starting balance + sum of active tallies for the same
    owner, work and measure dated on or before `on_date`), leaving out the
    tally being revised.
    """
    if work_id is None:
        raise ValidationError(
            "Cannot set total when no project is specified.",
            code="CANNOT_SET_TOTAL",
        )

    work = await get_work(db, owner_id, work_id)
    if work is None:
        raise ValidationError(
            "Cannot set total because the project specified was not found.",
            code="CANNOT_SET_TOTAL",
            ids={"workId": work_id},
        )

    stmt = select(func.coalesce(func.sum(Tally.count), 0)).where(
        Tally.owner_id == owner_id,
        Tally.work_id == work_id,
        Tally.measure == measure,
        Tally.state == State.ACTIVE,
        Tally.date <= on_date,
    )
    if exclude_tally_id is not None:
        stmt = stmt.where(Tally.id != exclude_tally_id)
    recorded = (await db.execute(stmt)).scalar_one()

    prior_sum = int(work.starting_balance.get(measure, 0)) + int(recorded)
    return total - prior_sum


async def _check_work(db: AsyncSession, owner_id: int, work_id: int | None) -> None:
    if work_id is not None and await get_work(db, owner_id, work_id) is None:
        raise NotFoundError("work", work_id)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def append_tally(db: AsyncSession, owner_id: int, data: CreateTallyRequest) -> Tally:
    """Record a tally. Two identical calls create two tallies."""
    measure = str(data.measure)
    count = data.count
    if data.set_total:
        count = await reconcile_total(db, owner_id, data.work_id, measure, data.date, data.count)
    else:
        await _check_work(db, owner_id, data.work_id)

    tags = await find_or_create_tags(db, owner_id, data.tags)
    tally = Tally(
        owner_id=owner_id,
        work_id=data.work_id,
        date=data.date,
        measure=measure,
        count=count,
        note=data.note,
        state=State.ACTIVE,
        tags=tags,
    )
    db.add(tally)
    await db.flush()
    logger.info("Tally created: id=%d owner=%d measure=%s count=%d", tally.id, owner_id, measure, count)
    return tally


async def append_tallies(db: AsyncSession, owner_id: int, items: list[BatchTallyItem]) -> list[Tally]:
    """Bulk-append plain delta tallies in one transaction."""
    for work_id in {item.work_id for item in items if item.work_id is not None}:
        await _check_work(db, owner_id, work_id)

    tallies = [
        Tally(
            owner_id=owner_id,
            work_id=item.work_id,
            date=item.date,
            measure=str(item.measure),
            count=item.count,
            note=item.note,
            state=State.ACTIVE,
            tags=[],
        )
        for item in items
    ]
    db.add_all(tallies)
    await db.flush()
    logger.info("Batch tallies created: owner=%d count=%d", owner_id, len(tallies))
    return tallies


async def revise_tally(db: AsyncSession, owner_id: int, tally_id: int, data: UpdateTallyRequest) -> Tally:
    """Update a tally. Omitted fields keep their stored values.

    With `set_total`, `count` is re-read as a running total and reconciled
    against every other tally, so resubmitting the same total is a no-op.
    """
    tally = await require_tally(db, owner_id, tally_id)
    provided = data.model_fields_set

    work_id = data.work_id if "work_id" in provided else tally.work_id
    measure = str(data.measure) if data.measure is not None else tally.measure
    on_date = data.date if data.date is not None else tally.date

    if data.set_total:
        if data.count is None:
            raise ValidationError("A total is required when setting the total.", code="CANNOT_SET_TOTAL")
        count = await reconcile_total(db, owner_id, work_id, measure, on_date, data.count, exclude_tally_id=tally.id)
    else:
        if "work_id" in provided:
            await _check_work(db, owner_id, work_id)
        count = data.count if data.count is not None else tally.count

    tally.work_id = work_id
    tally.measure = measure
    tally.date = on_date
    tally.count = count
    if data.note is not None:
        tally.note = data.note

    if data.tags is not None:
        await _reconcile_tags(db, owner_id, tally, data.tags)

    await db.flush()
    logger.info("Tally updated: id=%d owner=%d", tally.id, owner_id)
    return tally


async def _reconcile_tags(db: AsyncSession, owner_id: int, tally: Tally, names: list[str]) -> None:
    """Attach newly named tags and detach ones no longer named. Tags themselves survive."""
    wanted = set(names)
    current = {tag.name for tag in tally.tags}

    to_detach = [tag for tag in tally.tags if tag.name not in wanted]
    for tag in to_detach:
        tally.tags.remove(tag)

    to_attach = [name for name in names if name not in current]
    for tag in await find_or_create_tags(db, owner_id, to_attach):
        tally.tags.append(tag)


async def retract_tally(db: AsyncSession, owner_id: int, tally_id: int) -> Tally:
    """Remove a tally from the ledger (hard delete)."""
    tally = await require_tally(db, owner_id, tally_id)
    await db.delete(tally)
    await db.flush()
    logger.info("Tally deleted: id=%d owner=%d", tally_id, owner_id)
    return tally
