# dalali/services/items.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import asyncpg

from ..db import get_pool, store
from ..errors import NotFoundError, ValidationError
from .commission import DalaliType, parse_dalali_type, to_decimal


# --- validation ----------------------------------------------------------------
def _clean_item(payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate item fields. Items keep the dalali type as entered ("%" or
    "Per Quintal"); the short code is only used on order items.
    """
    out: Dict[str, Any] = {}
    if "name" in payload or not partial:
        name = (payload.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required")
        out["name"] = name
    if "price" in payload or not partial:
        price = to_decimal(payload.get("price"), "price")
        if price < 0:
            raise ValidationError("price cannot be negative")
        out["price"] = price
    if "weight" in payload or not partial:
        weight = to_decimal(payload.get("weight"), "weight")
        if weight <= 0:
            raise ValidationError("weight must be greater than zero")
        out["weight"] = weight
    if "dalali_type" in payload or not partial:
        kind = parse_dalali_type(payload.get("dalali_type"))
        out["dalali_type"] = "%" if kind is DalaliType.PERCENT else "Per Quintal"
    for rate in ("buyer_dalali_rate", "seller_dalali_rate"):
        if rate in payload or not partial:
            value = to_decimal(payload.get(rate), rate)
            if value < 0:
                raise ValidationError(f"{rate} cannot be negative")
            out[rate] = value
    if "image_url" in payload:
        out["image_url"] = payload["image_url"] or None
    return out


async def _resolve_category(conn, user_id: str, payload: Dict[str, Any]) -> Optional[str]:
    """category_id wins; otherwise a category_name is created on the fly."""
    if payload.get("category_id"):
        return payload["category_id"]
    name = (payload.get("category_name") or "").strip()
    if name:
        return (await store.insert_category(conn, user_id, name))["id"]
    return None


# --- categories ---------------------------------------------------------------
async def list_categories(user_id: str) -> List[Dict[str, Any]]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        return await store.fetch_categories(conn, user_id)


async def create_category(user_id: str, name: str) -> Dict[str, Any]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("category name is required")
    pool = await get_pool()
    async with pool.acquire() as conn:
        return await store.insert_category(conn, user_id, name)


# --- items --------------------------------------------------------------------
async def list_items(
    user_id: str,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        return await store.fetch_items(conn, user_id, category_id, (search or "").strip() or None)


async def get_item(user_id: str, item_id: str) -> Dict[str, Any]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        item = await store.fetch_item(conn, user_id, item_id)
    if item is None:
        raise NotFoundError("item not found")
    return item


async def create_item(user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    data = _clean_item(payload)
    pool = await get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            category_id = await _resolve_category(conn, user_id, payload)
            if category_id is None:
                raise ValidationError("category is required")
            data["category_id"] = category_id
            item = await store.insert_item(conn, user_id, data)
            # re-read for the category name
            return await store.fetch_item(conn, user_id, item["id"])


async def update_item(user_id: str, item_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    data = _clean_item(payload, partial=True)
    pool = await get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            category_id = await _resolve_category(conn, user_id, payload)
            if category_id is not None:
                data["category_id"] = category_id
            item = await store.update_item(conn, user_id, item_id, data)
            if item is not None:
                item = await store.fetch_item(conn, user_id, item_id)
    if item is None:
        raise NotFoundError("item not found")
    return item


async def delete_item(user_id: str, item_id: str) -> None:
    pool = await get_pool()
    async with pool.acquire() as conn:
        try:
            deleted = await store.delete_item(conn, user_id, item_id)
        except asyncpg.ForeignKeyViolationError:
            raise ValidationError("item is part of existing orders and cannot be deleted") from None
    if deleted == 0:
        raise NotFoundError("item not found")


async def catalog(user_id: str) -> Dict[str, Any]:
    """Items, categories and stakeholders in one go; the reads are independent."""
    pool = await get_pool()

    async def _read(fn, *args):
        async with pool.acquire() as conn:
            return await fn(conn, user_id, *args)

    items, categories, stakeholders = await asyncio.gather(
        _read(store.fetch_items),
        _read(store.fetch_categories),
        _read(store.fetch_stakeholders),
    )
    return {"items": items, "categories": categories, "stakeholders": stakeholders}
