"""Work (project) business logic.

Works are owned by exactly one user. Deleting a work is a soft delete that
also soft-deletes its active tallies; undeleting restores both.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.constants import State
from inkwell.db.models import Tally, Work
from inkwell.errors import NotFoundError
from inkwell.works.schemas import CreateWorkRequest, UpdateWorkRequest

logger = logging.getLogger(__name__)


async def get_work(db: AsyncSession, owner_id: int, work_id: int, state: str = State.ACTIVE) -> Work | None:
    """Get one of the owner's works in the given state."""
    result = await db.execute(
        select(Work).where(
            Work.id == work_id,
            Work.owner_id == owner_id,
            Work.state == state,
        )
    )
    return result.scalar_one_or_none()


async def require_work(db: AsyncSession, owner_id: int, work_id: int, state: str = State.ACTIVE) -> Work:
    work = await get_work(db, owner_id, work_id, state)
    if work is None:
        raise NotFoundError("work", work_id)
    return work


async def list_works(db: AsyncSession, owner_id: int) -> list[Work]:
    result = await db.execute(
        select(Work)
        .where(Work.owner_id == owner_id, Work.state == State.ACTIVE)
        .order_by(Work.id)
    )
    return list(result.scalars().all())


async def create_work(db: AsyncSession, owner_id: int, data: CreateWorkRequest) -> Work:
    work = Work(
        owner_id=owner_id,
        title=data.title,
        description=data.description,
        phase=data.phase,
        starting_balance={str(measure): count for measure, count in data.starting_balance.items()},
        starred=data.starred,
        state=State.ACTIVE,
    )
    db.add(work)
    await db.flush()
    logger.info("Work created: id=%d owner=%d", work.id, owner_id)
    return work


async def update_work(db: AsyncSession, owner_id: int, work_id: int, data: UpdateWorkRequest) -> Work:
    work = await require_work(db, owner_id, work_id)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("starting_balance") is not None:
        changes["starting_balance"] = {str(m): c for m, c in changes["starting_balance"].items()}
    for field_name, value in changes.items():
        if value is not None:
            setattr(work, field_name, value)

    await db.flush()
    return work


async def delete_work(db: AsyncSession, owner_id: int, work_id: int) -> Work:
    """Soft-delete a work and every active tally under it."""
    work = await require_work(db, owner_id, work_id)
    work.state = State.DELETED
    await db.execute(
        update(Tally)
        .where(Tally.work_id == work.id, Tally.owner_id == owner_id, Tally.state == State.ACTIVE)
        .values(state=State.DELETED)
    )
    await db.flush()
    logger.info("Work deleted: id=%d owner=%d", work.id, owner_id)
    return work


async def undelete_work(db: AsyncSession, owner_id: int, work_id: int) -> Work:
    """Restore a deleted work together with the tallies deleted alongside it."""
    work = await require_work(db, owner_id, work_id, state=State.DELETED)
    work.state = State.ACTIVE
    await db.execute(
        update(Tally)
        .where(Tally.work_id == work.id, Tally.owner_id == owner_id, Tally.state == State.DELETED)
        .values(state=State.ACTIVE)
    )
    await db.flush()
    logger.info("Work undeleted: id=%d owner=%d", work.id, owner_id)
    return work
