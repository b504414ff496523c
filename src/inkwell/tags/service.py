"""Tag business logic.

Rules:
- Tag names are unique per owner
- Deleting a tag is a hard delete; its tally links go with it
- Tallies create missing tags by name with the default color
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.constants import TAG_DEFAULT_COLOR
from inkwell.db.models import Tag, goal_tags, member_tags, tally_tags
from inkwell.errors import ConflictError, NotFoundError
from inkwell.tags.schemas import CreateTagRequest, UpdateTagRequest

logger = logging.getLogger(__name__)


async def list_tags(db: AsyncSession, owner_id: int) -> list[Tag]:
    result = await db.execute(select(Tag).where(Tag.owner_id == owner_id).order_by(Tag.name))
    return list(result.scalars().all())


async def get_tag(db: AsyncSession, owner_id: int, tag_id: int) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.id == tag_id, Tag.owner_id == owner_id))
    return result.scalar_one_or_none()


async def require_tag(db: AsyncSession, owner_id: int, tag_id: int) -> Tag:
    tag = await get_tag(db, owner_id, tag_id)
    if tag is None:
        raise NotFoundError("tag", tag_id)
    return tag


async def get_tag_by_name(db: AsyncSession, owner_id: int, name: str) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.owner_id == owner_id, Tag.name == name))
    return result.scalar_one_or_none()


async def _ensure_name_free(db: AsyncSession, owner_id: int, name: str, except_tag_id: int | None = None) -> None:
    existing = await get_tag_by_name(db, owner_id, name)
    if existing is not None and existing.id != except_tag_id:
        raise ConflictError(
            f"A tag named {name!r} already exists.",
            code="DUPLICATE_TAG",
            ids={"tagId": existing.id},
        )


async def create_tag(db: AsyncSession, owner_id: int, data: CreateTagRequest) -> Tag:
    await _ensure_name_free(db, owner_id, data.name)
    tag = Tag(owner_id=owner_id, name=data.name, color=data.color)
    db.add(tag)
    await db.flush()
    logger.info("Tag created: id=%d owner=%d", tag.id, owner_id)
    return tag


async def update_tag(db: AsyncSession, owner_id: int, tag_id: int, data: UpdateTagRequest) -> Tag:
    tag = await require_tag(db, owner_id, tag_id)
    if data.name is not None and data.name != tag.name:
        await _ensure_name_free(db, owner_id, data.name, except_tag_id=tag.id)
        tag.name = data.name
    if data.color is not None:
        tag.color = data.color
    await db.flush()
    return tag


async def delete_tag(db: AsyncSession, owner_id: int, tag_id: int) -> Tag:
    tag = await require_tag(db, owner_id, tag_id)
    for link_table in (tally_tags, goal_tags, member_tags):
        await db.execute(delete(link_table).where(link_table.c.tag_id == tag.id))
    await db.delete(tag)
    await db.flush()
    logger.info("Tag deleted: id=%d owner=%d", tag_id, owner_id)
    return tag


async def find_or_create_tags(db: AsyncSession, owner_id: int, names: Iterable[str]) -> list[Tag]:
    """Resolve tag names for an owner, creating any that do not exist yet."""
    wanted = list(dict.fromkeys(names))
    if not wanted:
        return []

    result = await db.execute(select(Tag).where(Tag.owner_id == owner_id, Tag.name.in_(wanted)))
    by_name = {tag.name: tag for tag in result.scalars()}

    for name in wanted:
        if name not in by_name:
            tag = Tag(owner_id=owner_id, name=name, color=TAG_DEFAULT_COLOR)
            db.add(tag)
            by_name[name] = tag
    await db.flush()
    return [by_name[name] for name in wanted]
