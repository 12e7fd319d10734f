# dalali/services/orders.py
from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import asyncpg

from ..db import get_pool, store
from ..errors import DalaliError, NotFoundError, StoreError, ValidationError
from .cart import aggregate_cart, line_snapshot
from .commission import Party, line_commission, normalize_dalali_type
from .debounce import WriteDebouncer

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


def start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def end_of_day(d: date) -> datetime:
    return datetime.combine(d, time.max, tzinfo=timezone.utc)


class _Step:
    """Tags the write step that is running so a failure names it."""

    def __init__(self, name: str):
        self.name = name

    def __enter__(self):
        logger.debug("step %s", self.name)
        return self

    def __exit__(self, exc_type, exc, tb):
        # cancellation (BaseException) passes through untouched
        if exc is None or isinstance(exc, DalaliError) or not isinstance(exc, Exception):
            return False
        if isinstance(exc, asyncpg.DataError):
            # bad input (malformed id, out-of-range number), not a store outage
            raise ValidationError(f"invalid value: {exc}") from exc
        logger.error("step %s failed: %s", self.name, exc)
        raise StoreError(
            f"{self.name.replace('_', ' ')} failed, nothing was saved: {exc}",
            step=self.name,
        ) from exc


async def _require_stakeholder(conn, user_id: str, stakeholder_id: str, type_: str) -> Dict[str, Any]:
    row = await store.fetch_stakeholder(conn, user_id, stakeholder_id)
    if row is None:
        raise NotFoundError(f"{type_} not found")
    if row["type"] != type_:
        raise ValidationError(f"{row['name']} is not a {type_}")
    return row


def _order_item_rows(lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    rows = []
    for line in lines:
        snap = line_snapshot(line)
        rows.append({
            "item_id": line["item"]["id"],
            "price": snap.price,
            "weight": snap.weight,
            "quantity": snap.quantity,
            "dalali_type": normalize_dalali_type(snap.dalali_type),
            "buyer_dalali_rate": snap.buyer_dalali_rate,
            "seller_dalali_rate": snap.seller_dalali_rate,
        })
    return rows


async def create_order_from_cart(
    user_id: str,
    buyer_id: str,
    seller_id: str,
    order_date: Optional[datetime] = None,
    note: Optional[str] = None,
    debouncer: Optional[WriteDebouncer] = None,
) -> Dict[str, Any]:
    """
    Turn the user's cart into an order with one order item per line, then
    empty the cart. Order, items and cart clear commit together or not at all.

    Totals are recomputed from the cart as it is in the database at this
    moment; nothing the client computed is trusted.
    """
    if debouncer is not None:
        await debouncer.flush(lambda k: k[0] == user_id)

    pool = await get_pool()
    async with pool.acquire() as conn:
        with _Step("commit_order"):
            async with conn.transaction():
                buyer = await _require_stakeholder(conn, user_id, buyer_id, "buyer")
                seller = await _require_stakeholder(conn, user_id, seller_id, "seller")

                lines = await store.fetch_cart_lines(conn, user_id)
                if not lines:
                    raise ValidationError("cart is empty")
                totals = aggregate_cart(lines)
                item_rows = _order_item_rows(lines)

                with _Step("create_order"):
                    order = await store.insert_order(conn, user_id, {
                        "buyer_id": buyer["id"],
                        "seller_id": seller["id"],
                        "order_date": order_date or _now(),
                        "note": note,
                        "buyer_dalali": totals.buyer_dalali,
                        "seller_dalali": totals.seller_dalali,
                        "dalali_amount": totals.buyer_dalali + totals.seller_dalali,
                        "total_bill_amount": totals.total,
                    })
                logger.info("order %s created for user %s", order["id"], user_id)

                with _Step("create_order_items"):
                    await store.insert_order_items(conn, order["id"], item_rows)

                with _Step("clear_cart"):
                    cleared = await store.delete_cart(conn, user_id)
                logger.info("order %s: %d items, cart cleared (%d lines)", order["id"], len(item_rows), cleared)

    order["buyer_name"] = buyer["name"]
    order["seller_name"] = seller["name"]
    order["items"] = item_rows
    return order


async def delete_order(user_id: str, order_id: str) -> Dict[str, Any]:
    """Delete an order and its items together; returns the ids involved."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            order = await store.fetch_order(conn, user_id, order_id)
            if order is None:
                raise NotFoundError("order not found")
            with _Step("delete_order_items"):
                removed = await store.delete_order_items(conn, order_id)
            with _Step("delete_order"):
                await store.delete_order(conn, user_id, order_id)
    logger.info("order %s deleted (%d items)", order_id, removed)
    return {"orderId": order["id"], "buyerId": order["buyer_id"], "sellerId": order["seller_id"]}


async def set_bill_paid(user_id: str, order_id: str, bill_paid: bool) -> Dict[str, Any]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        with _Step("update_bill_paid"):
            row = await store.set_bill_paid(conn, user_id, order_id, bill_paid)
    if row is None:
        raise NotFoundError("order not found")
    return row


def with_commission(item: Dict[str, Any]) -> Dict[str, Any]:
    """Attach both commissions, computed from the order item's own snapshot."""
    out = dict(item)
    out["buyer_dalali"] = line_commission(item, Party.BUYER)
    out["seller_dalali"] = line_commission(item, Party.SELLER)
    return out


async def get_order_details(user_id: str, order_id: str) -> Dict[str, Any]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        order = await store.fetch_order(conn, user_id, order_id)
        if order is None:
            raise NotFoundError("order not found")
        items = await store.fetch_order_items(conn, order_id)
    order["items"] = [with_commission(it) for it in items]
    return order


async def list_stakeholder_orders(
    user_id: str,
    stakeholder_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Orders where the stakeholder is buyer or seller, newest first. End date is inclusive."""
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start date is after end date")
    pool = await get_pool()
    async with pool.acquire() as conn:
        if await store.fetch_stakeholder(conn, user_id, stakeholder_id) is None:
            raise NotFoundError("stakeholder not found")
        return await store.fetch_stakeholder_orders(
            conn,
            user_id,
            stakeholder_id,
            start_of_day(start_date) if start_date else None,
            end_of_day(end_date) if end_date else None,
        )


def _month_bounds(year: int, month: int):
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    return start_of_day(date(year, month, 1)), end_of_day(date(year, month, last_day))


async def monthly_dalali(user_id: str, year: Optional[int] = None, month: Optional[int] = None) -> Dict[str, Any]:
    today = _now()
    year = year or today.year
    month = month or today.month
    start, end = _month_bounds(year, month)
    pool = await get_pool()
    async with pool.acquire() as conn:
        buyer, seller = await store.sum_dalali(conn, user_id, start, end)
    buyer, seller = Decimal(buyer), Decimal(seller)
    return {
        "year": year,
        "month": month,
        "buyer_dalali": buyer,
        "seller_dalali": seller,
        "total_dalali": buyer + seller,
    }
