# dalali/services/cart.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional

from ..db import get_pool, store
from ..errors import NotFoundError, ValidationError
from .commission import LineSnapshot, Party, line_amount, line_commission, to_decimal, to_quantity
from .debounce import WriteDebouncer

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


@dataclass(frozen=True)
class CartTotals:
    total: Decimal = ZERO
    buyer_dalali: Decimal = ZERO
    seller_dalali: Decimal = ZERO


# --- pure helpers -------------------------------------------------------------
def effective_price(line: Mapping[str, Any]) -> Any:
    """A line's own price when set, else the item's canonical price."""
    price = line.get("price")
    return price if price is not None else line["item"]["price"]


def line_snapshot(line: Mapping[str, Any]) -> LineSnapshot:
    item = line["item"]
    return LineSnapshot.of({
        "price": effective_price(line),
        "weight": item["weight"],
        "quantity": line["quantity"],
        "dalali_type": item["dalali_type"],
        "buyer_dalali_rate": item["buyer_dalali_rate"],
        "seller_dalali_rate": item["seller_dalali_rate"],
    })


def aggregate_cart(lines: Iterable[Mapping[str, Any]]) -> CartTotals:
    """Totals for on-screen confirmation. Empty cart -> all zeros."""
    total = buyer = seller = ZERO
    for line in lines:
        snap = line_snapshot(line)
        total += line_amount(snap)
        buyer += line_commission(snap, Party.BUYER)
        seller += line_commission(snap, Party.SELLER)
    return CartTotals(total=total, buyer_dalali=buyer, seller_dalali=seller)


def validate_edit(field: str, raw: Any) -> Any:
    """Parse a user edit for a cart field; never coerces bad input to a default."""
    if field == "quantity":
        qty = to_quantity(raw)
        if qty <= 0:
            raise ValidationError("quantity must be a positive whole number")
        return qty
    if field == "price":
        price = to_decimal(raw, "price")
        if price <= 0:
            raise ValidationError("price must be greater than zero")
        return price
    raise ValidationError(f"cart field not editable: {field}")


# --- store-backed operations --------------------------------------------------
async def list_cart(user_id: str) -> List[Dict[str, Any]]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        lines = await store.fetch_cart_lines(conn, user_id)
    for line in lines:
        line["effective_price"] = effective_price(line)
    return lines


async def cart_summary(user_id: str) -> Dict[str, Any]:
    lines = await list_cart(user_id)
    return {"lines": lines, "totals": aggregate_cart(lines)}


async def cart_count(user_id: str) -> int:
    pool = await get_pool()
    async with pool.acquire() as conn:
        return await store.count_cart(conn, user_id)


async def add_to_cart(user_id: str, item_id: str) -> Dict[str, Any]:
    """Add one unit of an item; bumps quantity if the item is already in the cart."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            if await store.fetch_item(conn, user_id, item_id) is None:
                raise NotFoundError("item not found")
            existing = await store.fetch_cart_line_for_item(conn, user_id, item_id)
            if existing:
                await store.update_cart_line(
                    conn, user_id, existing["id"], "quantity", existing["quantity"] + 1
                )
                line_id = existing["id"]
            else:
                line_id = (await store.insert_cart_line(conn, user_id, item_id))["id"]
            return await store.fetch_cart_line(conn, user_id, line_id)


async def remove_from_cart(user_id: str, line_id: str, debouncer: Optional[WriteDebouncer] = None) -> None:
    line_id = str(line_id)
    if debouncer is not None:
        # edits queued for a removed line have nothing left to update
        debouncer.discard(lambda k: k[:2] == (user_id, line_id))
    pool = await get_pool()
    async with pool.acquire() as conn:
        if await store.delete_cart_line(conn, user_id, line_id) == 0:
            raise NotFoundError("cart line not found")


async def persist_cart_edit(key: Hashable, value: Any) -> None:
    """Writer used by the debouncer; key is (user_id, line_id, field)."""
    user_id, line_id, field = key
    pool = await get_pool()
    async with pool.acquire() as conn:
        updated = await store.update_cart_line(conn, user_id, line_id, field, value)
    if updated == 0:
        # removed or checked out while the edit was waiting
        logger.info("cart line %s is gone, dropped %s edit", line_id, field)
        return
    logger.debug("saved cart %s=%s for line %s", field, value, line_id)


async def edit_cart_line(
    user_id: str,
    line_id: str,
    changes: Mapping[str, Any],
    debouncer: WriteDebouncer,
) -> Dict[str, Any]:
    """
    Validate price/quantity edits and queue them on the debouncer.
    Returns the parsed values that were queued.
    """
    line_id = str(line_id)
    parsed = {field: validate_edit(field, raw) for field, raw in changes.items()}
    if not parsed:
        raise ValidationError("nothing to update")
    pool = await get_pool()
    async with pool.acquire() as conn:
        if await store.fetch_cart_line(conn, user_id, line_id) is None:
            raise NotFoundError("cart line not found")
    for field, value in parsed.items():
        debouncer.submit((user_id, line_id, field), value)
    return parsed


def make_cart_debouncer(window: float) -> WriteDebouncer:
    return WriteDebouncer(window, persist_cart_edit)
