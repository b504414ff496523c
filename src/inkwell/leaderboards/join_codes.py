"""Join code generation for leaderboards.

Codes are alphanumeric (A-Z, 0-9), generated server-side with a
cryptographic random source. Lookups are case-insensitive.
"""

from __future__ import annotations

import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.config import get_settings
from inkwell.db.models import Leaderboard

JOIN_CODE_CHARSET = string.ascii_uppercase + string.digits
MAX_ATTEMPTS = 10


def generate_join_code(length: int | None = None) -> str:
    if length is None:
        length = get_settings().join_code_length
    return "".join(secrets.choice(JOIN_CODE_CHARSET) for _ in range(length))


def normalize_join_code(code: str) -> str:
    return code.strip().upper()


async def generate_unique_join_code(db: AsyncSession) -> str:
    """Generate a join code no leaderboard uses yet, deleted boards included."""
    for _ in range(MAX_ATTEMPTS):
        code = generate_join_code()
        existing = await db.execute(select(Leaderboard.id).where(Leaderboard.join_code == code))
        if existing.scalar_one_or_none() is None:
            return code
    raise RuntimeError(f"Failed to generate unique join code after {MAX_ATTEMPTS} attempts")
