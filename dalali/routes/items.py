# dalali/routes/items.py
from __future__ import annotations
from typing import Optional, List
from decimal import Decimal
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..auth import current_user
from ..schemas.common import Id
from ..services.items import (
    list_items,
    get_item,
    create_item,
    update_item,
    delete_item,
    list_categories,
    create_category,
)

router = APIRouter(tags=["items"])


# ---- Pydantic models ---------------------------------------------------------
class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryOut(BaseModel):
    id: Id
    name: str


class ItemIn(BaseModel):
    name: Optional[str] = None
    category_id: Optional[UUID] = None
    category_name: Optional[str] = None      # creates the category if new
    price: Optional[Decimal] = None          # per kg
    weight: Optional[Decimal] = None         # kg per bag
    dalali_type: Optional[str] = None        # "%" | "Per Quintal"
    buyer_dalali_rate: Optional[Decimal] = None
    seller_dalali_rate: Optional[Decimal] = None
    image_url: Optional[str] = None


class ItemOut(BaseModel):
    id: Id
    name: str
    category_id: Id
    category_name: Optional[str] = None
    price: float
    weight: float
    dalali_type: str
    buyer_dalali_rate: float
    seller_dalali_rate: float
    image_url: Optional[str] = None


# ---- Routes ------------------------------------------------------------------
@router.get("/categories", response_model=List[CategoryOut])
async def list_categories_endpoint(user_id: str = Depends(current_user)):
    return await list_categories(user_id)


@router.post("/categories", response_model=CategoryOut)
async def create_category_endpoint(body: CategoryIn, user_id: str = Depends(current_user)):
    return await create_category(user_id, body.name)


@router.get("/items", response_model=List[ItemOut])
async def list_items_endpoint(
    category_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    user_id: str = Depends(current_user),
):
    return await list_items(user_id, category_id=category_id, search=search)


@router.get("/items/{item_id}", response_model=ItemOut)
async def get_item_endpoint(item_id: UUID, user_id: str = Depends(current_user)):
    return await get_item(user_id, item_id)


@router.post("/items", response_model=ItemOut)
async def create_item_endpoint(payload: ItemIn, user_id: str = Depends(current_user)):
    return await create_item(user_id, payload.model_dump(exclude_unset=True))


@router.patch("/items/{item_id}", response_model=ItemOut)
async def update_item_endpoint(item_id: UUID, payload: ItemIn, user_id: str = Depends(current_user)):
    return await update_item(user_id, item_id, payload.model_dump(exclude_unset=True))


@router.delete("/items/{item_id}")
async def delete_item_endpoint(item_id: UUID, user_id: str = Depends(current_user)):
    await delete_item(user_id, item_id)
    return {"ok": True}
