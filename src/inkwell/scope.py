"""Scope filter shared by tally queries, goals and leaderboard members.

An empty work or tag set means "do not filter on it". The ledger, goal
evaluation and leaderboard aggregation all build their SQL here.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import Select, false, select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.constants import State
from inkwell.db.models import Tag, Tally, Work, tally_tags
from inkwell.errors import ValidationError


@dataclass(frozen=True)
class ScopeFilter:
    """Which slice of one owner's ledger counts.

    `measures=None` includes every measure; an empty tuple matches nothing
    (used for leaderboard members without an individual goal).
    """

    work_ids: frozenset[int] = field(default_factory=frozenset)
    tag_ids: frozenset[int] = field(default_factory=frozenset)
    start_date: date | None = None
    end_date: date | None = None
    measures: tuple[str, ...] | None = None

    @classmethod
    def build(
        cls,
        work_ids: Iterable[int] | None = None,
        tag_ids: Iterable[int] | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        measures: Iterable[str] | None = None,
    ) -> ScopeFilter:
        return cls(
            work_ids=frozenset(work_ids or ()),
            tag_ids=frozenset(tag_ids or ()),
            start_date=start_date,
            end_date=end_date,
            measures=tuple(measures) if measures is not None else None,
        )


def scoped_tallies_query(owner_id: int, scope: ScopeFilter) -> Select[tuple[Tally]]:
    """Build the SELECT for an owner's active tallies within a scope."""
    stmt = select(Tally).where(
        Tally.owner_id == owner_id,
        Tally.state == State.ACTIVE,
    )
    if scope.work_ids:
        stmt = stmt.where(Tally.work_id.in_(sorted(scope.work_ids)))
    if scope.tag_ids:
        # At least one of the listed tags.
        tagged = select(tally_tags.c.tally_id).where(tally_tags.c.tag_id.in_(sorted(scope.tag_ids)))
        stmt = stmt.where(Tally.id.in_(tagged))
    if scope.start_date is not None:
        stmt = stmt.where(Tally.date >= scope.start_date)
    if scope.end_date is not None:
        stmt = stmt.where(Tally.date <= scope.end_date)
    if scope.measures is not None:
        if not scope.measures:
            return stmt.where(false())
        stmt = stmt.where(Tally.measure.in_(scope.measures))
    return stmt


async def resolve_scope_entities(
    db: AsyncSession,
    owner_id: int,
    work_ids: Iterable[int],
    tag_ids: Iterable[int],
) -> tuple[list[Work], list[Tag]]:
    """Load the owner's works and tags named by a scope filter.

    Ids that are missing or belong to someone else make the scope invalid.
    """
    wanted_works = sorted(set(work_ids))
    wanted_tags = sorted(set(tag_ids))

    works: list[Work] = []
    if wanted_works:
        result = await db.execute(
            select(Work).where(
                Work.id.in_(wanted_works),
                Work.owner_id == owner_id,
                Work.state == State.ACTIVE,
            )
        )
        works = list(result.scalars().all())
        missing = set(wanted_works) - {work.id for work in works}
        if missing:
            raise ValidationError(
                f"Unknown project ids in scope: {sorted(missing)}",
                code="INVALID_SCOPE",
                ids={"workId": min(missing)},
            )

    tags: list[Tag] = []
    if wanted_tags:
        result = await db.execute(select(Tag).where(Tag.id.in_(wanted_tags), Tag.owner_id == owner_id))
        tags = list(result.scalars().all())
        missing = set(wanted_tags) - {tag.id for tag in tags}
        if missing:
            raise ValidationError(
                f"Unknown tag ids in scope: {sorted(missing)}",
                code="INVALID_SCOPE",
                ids={"tagId": min(missing)},
            )

    return works, tags
