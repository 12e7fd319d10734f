# dalali/services/profiles.py
from __future__ import annotations
from typing import Any, Dict

from ..db import get_pool, store

REQUIRED = ("company_name", "mobile_number")


def is_complete(profile: Dict[str, Any]) -> bool:
    return all((profile.get(f) or "").strip() for f in REQUIRED)


async def get_profile(user_id: str) -> Dict[str, Any]:
    """A user with no row yet gets an empty profile."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await store.fetch_profile(conn, user_id)
    profile = row or {"id": user_id}
    profile["complete"] = is_complete(profile)
    return profile


async def update_profile(user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    data = {k: ((v or "").strip() or None) for k, v in payload.items() if k in store.PROFILE_COLUMNS}
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await store.upsert_profile(conn, user_id, data)
    row["complete"] = is_complete(row)
    return row
