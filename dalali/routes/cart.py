# dalali/routes/cart.py
from __future__ import annotations
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from ..auth import current_user
from ..schemas.orders import CartAddIn, CartEditIn, CartEditOut, CartLineOut, CartOut
from ..services.cart import (
    add_to_cart,
    cart_count,
    cart_summary,
    edit_cart_line,
    effective_price,
    remove_from_cart,
)

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartOut)
async def get_cart(user_id: str = Depends(current_user)):
    """Lines plus live totals; totals are for display only, checkout recomputes them."""
    summary = await cart_summary(user_id)
    totals = summary["totals"]
    return {
        "lines": summary["lines"],
        "totals": {
            "total": totals.total,
            "buyer_dalali": totals.buyer_dalali,
            "seller_dalali": totals.seller_dalali,
        },
    }


@router.get("/count")
async def get_cart_count(user_id: str = Depends(current_user)):
    return {"count": await cart_count(user_id)}


@router.post("", response_model=CartLineOut)
async def add_item(body: CartAddIn, user_id: str = Depends(current_user)):
    line = await add_to_cart(user_id, body.item_id)
    line["effective_price"] = effective_price(line)
    return line


# 202: the write happens once the user stops typing
@router.patch("/{line_id}", response_model=CartEditOut, status_code=202)
async def edit_line(line_id: UUID, body: CartEditIn, request: Request, user_id: str = Depends(current_user)):
    changes = body.model_dump(exclude_none=True)
    queued = await edit_cart_line(user_id, line_id, changes, request.app.state.cart_debouncer)
    return {"line_id": line_id, "pending": {k: str(v) for k, v in queued.items()}}


@router.delete("/{line_id}")
async def remove_line(line_id: UUID, request: Request, user_id: str = Depends(current_user)):
    await remove_from_cart(user_id, line_id, request.app.state.cart_debouncer)
    return {"ok": True}
