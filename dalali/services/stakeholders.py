# dalali/services/stakeholders.py
from __future__ import annotations
from typing import Any, Dict, List, Optional

import asyncpg

from ..db import get_pool, store
from ..errors import NotFoundError, ValidationError

TYPES = ("buyer", "seller")


def _check_type(value: Optional[str]) -> str:
    if value not in TYPES:
        raise ValidationError("type must be 'buyer' or 'seller'")
    return value


def _clean(payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if "type" in payload or not partial:
        out["type"] = _check_type(payload.get("type"))
    for field in ("name", "address", "phone_number"):
        if field in payload or not partial:
            value = (payload.get(field) or "").strip()
            if not value:
                raise ValidationError(f"{field.replace('_', ' ')} is required")
            out[field] = value
    return out


async def list_stakeholders(user_id: str, type_: Optional[str] = None) -> List[Dict[str, Any]]:
    if type_ is not None:
        _check_type(type_)
    pool = await get_pool()
    async with pool.acquire() as conn:
        return await store.fetch_stakeholders(conn, user_id, type_)


async def get_stakeholder(user_id: str, stakeholder_id: str) -> Dict[str, Any]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await store.fetch_stakeholder(conn, user_id, stakeholder_id)
    if row is None:
        raise NotFoundError("stakeholder not found")
    return row


async def create_stakeholder(user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    data = _clean(payload)
    pool = await get_pool()
    async with pool.acquire() as conn:
        return await store.insert_stakeholder(conn, user_id, data)


async def update_stakeholder(user_id: str, stakeholder_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    data = _clean(payload, partial=True)
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await store.update_stakeholder(conn, user_id, stakeholder_id, data)
    if row is None:
        raise NotFoundError("stakeholder not found")
    return row


async def delete_stakeholder(user_id: str, stakeholder_id: str) -> None:
    pool = await get_pool()
    async with pool.acquire() as conn:
        try:
            deleted = await store.delete_stakeholder(conn, user_id, stakeholder_id)
        except asyncpg.ForeignKeyViolationError:
            raise ValidationError("stakeholder has orders and cannot be deleted") from None
    if deleted == 0:
        raise NotFoundError("stakeholder not found")
