"""
SQL for every table the app touches.

One coroutine per statement; each takes an asyncpg connection as its first
argument so callers decide whether it runs inside a transaction. Every query
on a user-owned table is scoped by `user_id`.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

import asyncpg

ITEM_COLUMNS = (
    "name", "category_id", "price", "weight", "dalali_type",
    "buyer_dalali_rate", "seller_dalali_rate", "image_url",
)
STAKEHOLDER_COLUMNS = ("type", "name", "address", "phone_number")
PROFILE_COLUMNS = ("company_name", "address", "pan_number", "mobile_number")
CART_EDITABLE = ("price", "quantity")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _row(row: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    return dict(row) if row is not None else None


def _count(status: str) -> int:
    # asyncpg returns e.g. "DELETE 3"
    return int(status.split()[-1])


def _set_clause(data: Dict[str, Any], allowed: Iterable[str], params: List[Any]) -> str:
    sets = []
    for col in allowed:
        if col in data:
            params.append(data[col])
            sets.append(f"{col} = ${len(params)}")
    return ", ".join(sets)


# --- categories ---------------------------------------------------------------
async def fetch_categories(conn, user_id: str) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM categories WHERE user_id = $1 ORDER BY name", user_id
    )
    return [dict(r) for r in rows]


async def insert_category(conn, user_id: str, name: str) -> Dict[str, Any]:
    row = await conn.fetchrow(
        """
        INSERT INTO categories (user_id, name) VALUES ($1, $2)
        ON CONFLICT (user_id, name) DO UPDATE SET name = EXCLUDED.name
        RETURNING *
        """,
        user_id,
        name,
    )
    return dict(row)


# --- items --------------------------------------------------------------------
async def fetch_items(
    conn,
    user_id: str,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    where = ["i.user_id = $1"]
    params: List[Any] = [user_id]
    if category_id:
        params.append(category_id)
        where.append(f"i.category_id = ${len(params)}")
    if search:
        params.append(f"%{search}%")
        where.append(f"i.name ILIKE ${len(params)}")
    rows = await conn.fetch(
        f"""
        SELECT i.*, c.name AS category_name
        FROM items i LEFT JOIN categories c ON c.id = i.category_id
        WHERE {" AND ".join(where)}
        ORDER BY i.created_at DESC
        """,
        *params,
    )
    return [dict(r) for r in rows]


async def fetch_item(conn, user_id: str, item_id: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        """
        SELECT i.*, c.name AS category_name
        FROM items i LEFT JOIN categories c ON c.id = i.category_id
        WHERE i.id = $1 AND i.user_id = $2
        """,
        item_id,
        user_id,
    )
    return _row(row)


async def insert_item(conn, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    cols = [c for c in ITEM_COLUMNS if c in data]
    params = [user_id] + [data[c] for c in cols]
    placeholders = ", ".join(f"${i}" for i in range(2, len(cols) + 2))
    row = await conn.fetchrow(
        f"INSERT INTO items (user_id, {', '.join(cols)}) VALUES ($1, {placeholders}) RETURNING *",
        *params,
    )
    return dict(row)


async def update_item(conn, user_id: str, item_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    params: List[Any] = [item_id, user_id]
    sets = _set_clause(data, ITEM_COLUMNS, params)
    if not sets:
        return await fetch_item(conn, user_id, item_id)
    params.append(_now())
    row = await conn.fetchrow(
        f"UPDATE items SET {sets}, updated_at = ${len(params)} "
        "WHERE id = $1 AND user_id = $2 RETURNING *",
        *params,
    )
    return _row(row)


async def delete_item(conn, user_id: str, item_id: str) -> int:
    status = await conn.execute(
        "DELETE FROM items WHERE id = $1 AND user_id = $2", item_id, user_id
    )
    return _count(status)


# --- stakeholders -------------------------------------------------------------
async def fetch_stakeholders(conn, user_id: str, type_: Optional[str] = None) -> List[Dict[str, Any]]:
    if type_:
        rows = await conn.fetch(
            "SELECT * FROM stakeholders WHERE user_id = $1 AND type = $2 ORDER BY name",
            user_id,
            type_,
        )
    else:
        rows = await conn.fetch(
            "SELECT * FROM stakeholders WHERE user_id = $1 ORDER BY name", user_id
        )
    return [dict(r) for r in rows]


async def fetch_stakeholder(conn, user_id: str, stakeholder_id: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "SELECT * FROM stakeholders WHERE id = $1 AND user_id = $2",
        stakeholder_id,
        user_id,
    )
    return _row(row)


async def insert_stakeholder(conn, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    row = await conn.fetchrow(
        """
        INSERT INTO stakeholders (user_id, type, name, address, phone_number)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING *
        """,
        user_id,
        data["type"],
        data["name"],
        data["address"],
        data["phone_number"],
    )
    return dict(row)


async def update_stakeholder(conn, user_id: str, stakeholder_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    params: List[Any] = [stakeholder_id, user_id]
    sets = _set_clause(data, STAKEHOLDER_COLUMNS, params)
    if not sets:
        return await fetch_stakeholder(conn, user_id, stakeholder_id)
    params.append(_now())
    row = await conn.fetchrow(
        f"UPDATE stakeholders SET {sets}, updated_at = ${len(params)} "
        "WHERE id = $1 AND user_id = $2 RETURNING *",
        *params,
    )
    return _row(row)


async def delete_stakeholder(conn, user_id: str, stakeholder_id: str) -> int:
    status = await conn.execute(
        "DELETE FROM stakeholders WHERE id = $1 AND user_id = $2",
        stakeholder_id,
        user_id,
    )
    return _count(status)


# --- cart ---------------------------------------------------------------------
def _cart_row_to_dict(row) -> Dict[str, Any]:
    """Flat join row -> {id, quantity, price, item: {...}}."""
    return {
        "id": row["id"],
        "quantity": row["quantity"],
        "price": row["price"],
        "item": {
            "id": row["item_id"],
            "name": row["item_name"],
            "price": row["item_price"],
            "weight": row["item_weight"],
            "dalali_type": row["item_dalali_type"],
            "buyer_dalali_rate": row["item_buyer_dalali_rate"],
            "seller_dalali_rate": row["item_seller_dalali_rate"],
        },
    }


_CART_SELECT = """
    SELECT ci.id, ci.quantity, ci.price, ci.item_id,
           i.name AS item_name, i.price AS item_price, i.weight AS item_weight,
           i.dalali_type AS item_dalali_type,
           i.buyer_dalali_rate AS item_buyer_dalali_rate,
           i.seller_dalali_rate AS item_seller_dalali_rate
    FROM cart_items ci JOIN items i ON i.id = ci.item_id
"""


async def fetch_cart_lines(conn, user_id: str) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        _CART_SELECT + " WHERE ci.user_id = $1 ORDER BY ci.created_at", user_id
    )
    return [_cart_row_to_dict(r) for r in rows]


async def fetch_cart_line(conn, user_id: str, line_id: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        _CART_SELECT + " WHERE ci.id = $1 AND ci.user_id = $2", line_id, user_id
    )
    return _cart_row_to_dict(row) if row is not None else None


async def fetch_cart_line_for_item(conn, user_id: str, item_id: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "SELECT id, quantity FROM cart_items WHERE item_id = $1 AND user_id = $2",
        item_id,
        user_id,
    )
    return _row(row)


async def insert_cart_line(conn, user_id: str, item_id: str, quantity: int = 1) -> Dict[str, Any]:
    row = await conn.fetchrow(
        "INSERT INTO cart_items (user_id, item_id, quantity) VALUES ($1, $2, $3) RETURNING *",
        user_id,
        item_id,
        quantity,
    )
    return dict(row)


async def update_cart_line(conn, user_id: str, line_id: str, field: str, value: Any) -> int:
    if field not in CART_EDITABLE:
        raise ValueError(f"cart field not editable: {field}")
    status = await conn.execute(
        f"UPDATE cart_items SET {field} = $3 WHERE id = $1 AND user_id = $2",
        line_id,
        user_id,
        value,
    )
    return _count(status)


async def delete_cart_line(conn, user_id: str, line_id: str) -> int:
    status = await conn.execute(
        "DELETE FROM cart_items WHERE id = $1 AND user_id = $2", line_id, user_id
    )
    return _count(status)


async def delete_cart(conn, user_id: str) -> int:
    status = await conn.execute("DELETE FROM cart_items WHERE user_id = $1", user_id)
    return _count(status)


async def count_cart(conn, user_id: str) -> int:
    return await conn.fetchval(
        "SELECT count(*) FROM cart_items WHERE user_id = $1", user_id
    )


# --- orders -------------------------------------------------------------------
async def insert_order(conn, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    row = await conn.fetchrow(
        """
        INSERT INTO orders (user_id, buyer_id, seller_id, order_date, note,
                            buyer_dalali, seller_dalali, dalali_amount, total_bill_amount)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
        RETURNING *
        """,
        user_id,
        data["buyer_id"],
        data["seller_id"],
        data["order_date"],
        data.get("note"),
        data["buyer_dalali"],
        data["seller_dalali"],
        data["dalali_amount"],
        data["total_bill_amount"],
    )
    return dict(row)


async def insert_order_items(conn, order_id: str, items: List[Dict[str, Any]]) -> int:
    rows = [
        (
            order_id,
            it["item_id"],
            it["price"],
            it["weight"],
            it["quantity"],
            it["dalali_type"],
            it["buyer_dalali_rate"],
            it["seller_dalali_rate"],
        )
        for it in items
    ]
    await conn.executemany(
        """
        INSERT INTO order_items (order_id, item_id, price, weight, quantity,
                                 dalali_type, buyer_dalali_rate, seller_dalali_rate)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
        """,
        rows,
    )
    return len(rows)


async def fetch_order(conn, user_id: str, order_id: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        """
        SELECT o.*, b.name AS buyer_name, s.name AS seller_name
        FROM orders o
        JOIN stakeholders b ON b.id = o.buyer_id
        JOIN stakeholders s ON s.id = o.seller_id
        WHERE o.id = $1 AND o.user_id = $2
        """,
        order_id,
        user_id,
    )
    return _row(row)


async def fetch_order_items(conn, order_id: str) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT oi.*, i.name AS item_name
        FROM order_items oi JOIN items i ON i.id = oi.item_id
        WHERE oi.order_id = $1
        ORDER BY oi.created_at
        """,
        order_id,
    )
    return [dict(r) for r in rows]


async def fetch_stakeholder_orders(
    conn,
    user_id: str,
    stakeholder_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    where = ["o.user_id = $1", "(o.buyer_id = $2 OR o.seller_id = $2)"]
    params: List[Any] = [user_id, stakeholder_id]
    if start is not None:
        params.append(start)
        where.append(f"o.order_date >= ${len(params)}")
    if end is not None:
        params.append(end)
        where.append(f"o.order_date <= ${len(params)}")
    rows = await conn.fetch(
        f"""
        SELECT o.*, b.name AS buyer_name, s.name AS seller_name
        FROM orders o
        JOIN stakeholders b ON b.id = o.buyer_id
        JOIN stakeholders s ON s.id = o.seller_id
        WHERE {" AND ".join(where)}
        ORDER BY o.order_date DESC
        """,
        *params,
    )
    return [dict(r) for r in rows]


async def fetch_stakeholder_order_items(
    conn,
    user_id: str,
    stakeholder_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Order items of every order the stakeholder took part in, flattened."""
    where = ["o.user_id = $1", "(o.buyer_id = $2 OR o.seller_id = $2)"]
    params: List[Any] = [user_id, stakeholder_id]
    if start is not None:
        params.append(start)
        where.append(f"o.order_date >= ${len(params)}")
    if end is not None:
        params.append(end)
        where.append(f"o.order_date <= ${len(params)}")
    rows = await conn.fetch(
        f"""
        SELECT oi.*, o.order_date, i.name AS item_name,
               b.name AS buyer_name, s.name AS seller_name
        FROM order_items oi
        JOIN orders o ON o.id = oi.order_id
        JOIN items i ON i.id = oi.item_id
        JOIN stakeholders b ON b.id = o.buyer_id
        JOIN stakeholders s ON s.id = o.seller_id
        WHERE {" AND ".join(where)}
        ORDER BY o.order_date DESC
        """,
        *params,
    )
    return [dict(r) for r in rows]


async def delete_order_items(conn, order_id: str) -> int:
    status = await conn.execute("DELETE FROM order_items WHERE order_id = $1", order_id)
    return _count(status)


async def delete_order(conn, user_id: str, order_id: str) -> int:
    status = await conn.execute(
        "DELETE FROM orders WHERE id = $1 AND user_id = $2", order_id, user_id
    )
    return _count(status)


async def set_bill_paid(conn, user_id: str, order_id: str, bill_paid: bool) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "UPDATE orders SET bill_paid = $3, updated_at = $4 "
        "WHERE id = $1 AND user_id = $2 RETURNING *",
        order_id,
        user_id,
        bill_paid,
        _now(),
    )
    return _row(row)


async def sum_dalali(conn, user_id: str, start: datetime, end: datetime) -> Tuple[Decimal, Decimal]:
    row = await conn.fetchrow(
        """
        SELECT COALESCE(SUM(buyer_dalali), 0) AS buyer_dalali,
               COALESCE(SUM(seller_dalali), 0) AS seller_dalali
        FROM orders
        WHERE user_id = $1 AND created_at >= $2 AND created_at <= $3
        """,
        user_id,
        start,
        end,
    )
    return row["buyer_dalali"], row["seller_dalali"]


# --- profiles -----------------------------------------------------------------
async def fetch_profile(conn, user_id: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow("SELECT * FROM profiles WHERE id = $1", user_id)
    return _row(row)


async def upsert_profile(conn, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    cols = [c for c in PROFILE_COLUMNS if c in data]
    params = [user_id] + [data[c] for c in cols] + [_now()]
    ts = f"${len(params)}"
    values = ", ".join(f"${i}" for i in range(2, len(cols) + 2))
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in cols)
    insert_cols = ", ".join(["id"] + cols + ["updated_at"])
    insert_vals = ", ".join(["$1"] + ([values] if values else []) + [ts])
    row = await conn.fetchrow(
        f"""
        INSERT INTO profiles ({insert_cols}) VALUES ({insert_vals})
        ON CONFLICT (id) DO UPDATE SET {updates + ', ' if updates else ''}updated_at = EXCLUDED.updated_at
        RETURNING *
        """,
        *params,
    )
    return dict(row)
