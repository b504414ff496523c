"""FastAPI dependencies for the acting user.

Authentication happens upstream: the gateway verifies the caller and forwards
their user id in a trusted header. The core only loads that user.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.config import get_settings
from inkwell.constants import State
from inkwell.database import get_session
from inkwell.db.models import User


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id, User.state == State.ACTIVE))
    return result.scalar_one_or_none()


async def get_acting_user(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the gateway-supplied user id to an active User. Raises 401 otherwise."""
    header = get_settings().acting_user_header
    raw = request.headers.get(header)
    if not raw:
        raise HTTPException(status_code=401, detail=f"Missing {header} header")
    try:
        user_id = int(raw)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=f"Malformed {header} header") from e

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user
