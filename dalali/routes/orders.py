# dalali/routes/orders.py
from __future__ import annotations
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from ..auth import current_user
from ..schemas.orders import (
    BillPaidIn,
    MonthlyDalaliOut,
    OrderCreateIn,
    OrderDeletedOut,
    OrderDetailOut,
    OrderOut,
)
from ..services.orders import (
    create_order_from_cart,
    delete_order,
    get_order_details,
    monthly_dalali,
    set_bill_paid,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderDetailOut, status_code=201)
async def create_order(body: OrderCreateIn, request: Request, user_id: str = Depends(current_user)):
    """Checkout: the cart becomes an order and is emptied, all or nothing."""
    return await create_order_from_cart(
        user_id,
        buyer_id=body.buyer_id,
        seller_id=body.seller_id,
        order_date=body.order_date,
        note=body.note,
        debouncer=request.app.state.cart_debouncer,
    )


@router.get("/stats/monthly", response_model=MonthlyDalaliOut)
async def monthly_stats(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    user_id: str = Depends(current_user),
):
    return await monthly_dalali(user_id, year, month)


@router.get("/{order_id}", response_model=OrderDetailOut)
async def get_order(order_id: UUID, user_id: str = Depends(current_user)):
    return await get_order_details(user_id, order_id)


@router.patch("/{order_id}/bill-paid", response_model=OrderOut)
async def update_bill_paid(order_id: UUID, body: BillPaidIn, user_id: str = Depends(current_user)):
    return await set_bill_paid(user_id, order_id, body.bill_paid)


@router.delete("/{order_id}", response_model=OrderDeletedOut)
async def remove_order(order_id: UUID, user_id: str = Depends(current_user)):
    return await delete_order(user_id, order_id)
