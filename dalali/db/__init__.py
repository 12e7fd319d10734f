"""
Shared asyncpg pool for the Dalali store.

Created on first use so importing the app (and the tests) never opens a
connection; closed from the app's shutdown hook.
"""
from __future__ import annotations

from typing import Optional

import asyncpg

from ..settings import settings

_pool: Optional[asyncpg.Pool] = None


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is not set; the Dalali store needs a Postgres DSN")
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
    return _pool


async def close_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.close()
