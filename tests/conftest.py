"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database (aiosqlite) with the
schema created from the ORM metadata.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ["INKWELL_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["INKWELL_LOG_FORMAT"] = "console"

from inkwell.config import get_settings  # noqa: E402
from inkwell.constants import State  # noqa: E402
from inkwell.database import close_db, get_engine, get_session, init_db  # noqa: E402
from inkwell.db import models  # noqa: E402, F401
from inkwell.db.base import Base  # noqa: E402
from inkwell.db.models import User  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema in a private in-memory database."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service calls and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app. The database is set up by `database`."""
    from inkwell.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(database: None) -> Callable[[str], Awaitable[User]]:
    """Factory creating a committed user, as the identity layer would."""

    async def _make_user(username: str) -> User:
        async for session in get_session():
            user = User(username=username, display_name=username.title(), state=State.ACTIVE)
            session.add(user)
            await session.commit()
            return user
        raise RuntimeError("Failed to get DB session")

    return _make_user


@pytest.fixture
def acting_as() -> Callable[[User], dict[str, str]]:
    """Headers the upstream gateway would add for a user."""

    def _acting_as(user: User) -> dict[str, str]:
        return {get_settings().acting_user_header: str(user.id)}

    return _acting_as
