"""Tag endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.database import get_session
from inkwell.db.models import User
from inkwell.dependencies import get_acting_user
from inkwell.tags.schemas import CreateTagRequest, TagResponse, UpdateTagRequest
from inkwell.tags.service import create_tag, delete_tag, list_tags, require_tag, update_tag

router = APIRouter(prefix="/api/v1/tags", tags=["Tags"])


@router.get("", response_model=list[TagResponse])
async def list_tags_endpoint(
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    return await list_tags(db, user.id)


@router.post("", response_model=TagResponse, status_code=201)
async def create_tag_endpoint(
    body: CreateTagRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    tag = await create_tag(db, user.id, body)
    await db.commit()
    return tag


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag_endpoint(
    tag_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    return await require_tag(db, user.id, tag_id)


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag_endpoint(
    tag_id: int,
    body: UpdateTagRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    tag = await update_tag(db, user.id, tag_id, body)
    await db.commit()
    return tag


@router.delete("/{tag_id}", response_model=TagResponse)
async def delete_tag_endpoint(
    tag_id: int,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_session),
):
    """Delete a tag. Tallies keep existing, minus the tag."""
    tag = await delete_tag(db, user.id, tag_id)
    await db.commit()
    return tag
