# dalali/routes/stakeholders.py
from __future__ import annotations
from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..auth import current_user
from ..schemas.common import Id
from ..schemas.orders import InvoiceOut, OrderOut
from ..services.invoice import build_invoice, invoice_filename, render_invoice_docx
from ..services.orders import list_stakeholder_orders
from ..services.stakeholders import (
    create_stakeholder,
    delete_stakeholder,
    get_stakeholder,
    list_stakeholders,
    update_stakeholder,
)

router = APIRouter(prefix="/stakeholders", tags=["stakeholders"])

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class StakeholderIn(BaseModel):
    type: Optional[Literal["buyer", "seller"]] = None
    name: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = None
    phone_number: Optional[str] = Field(None, max_length=20)


class StakeholderOut(BaseModel):
    id: Id
    type: str
    name: str
    address: str
    phone_number: str


@router.get("", response_model=List[StakeholderOut])
async def list_endpoint(
    type: Optional[Literal["buyer", "seller"]] = Query(None),
    user_id: str = Depends(current_user),
):
    return await list_stakeholders(user_id, type)


@router.post("", response_model=StakeholderOut)
async def create_endpoint(body: StakeholderIn, user_id: str = Depends(current_user)):
    return await create_stakeholder(user_id, body.model_dump(exclude_unset=True))


@router.get("/{stakeholder_id}", response_model=StakeholderOut)
async def get_endpoint(stakeholder_id: UUID, user_id: str = Depends(current_user)):
    return await get_stakeholder(user_id, stakeholder_id)


@router.patch("/{stakeholder_id}", response_model=StakeholderOut)
async def update_endpoint(stakeholder_id: UUID, body: StakeholderIn, user_id: str = Depends(current_user)):
    return await update_stakeholder(user_id, stakeholder_id, body.model_dump(exclude_unset=True))


@router.delete("/{stakeholder_id}")
async def delete_endpoint(stakeholder_id: UUID, user_id: str = Depends(current_user)):
    await delete_stakeholder(user_id, stakeholder_id)
    return {"ok": True}


@router.get("/{stakeholder_id}/orders", response_model=List[OrderOut])
async def orders_endpoint(
    stakeholder_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user_id: str = Depends(current_user),
):
    """Orders on either side (buyer or seller), newest first; end_date is inclusive."""
    return await list_stakeholder_orders(user_id, stakeholder_id, start_date, end_date)


@router.get("/{stakeholder_id}/invoice", response_model=InvoiceOut)
async def invoice_endpoint(
    stakeholder_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user_id: str = Depends(current_user),
):
    inv = await build_invoice(user_id, stakeholder_id, start_date, end_date)
    s = inv["stakeholder"]
    return {
        **inv,
        "stakeholder_id": s["id"],
        "stakeholder_name": s["name"],
        "stakeholder_type": s["type"],
    }


@router.get("/{stakeholder_id}/invoice.docx")
async def invoice_docx_endpoint(
    stakeholder_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user_id: str = Depends(current_user),
):
    inv = await build_invoice(user_id, stakeholder_id, start_date, end_date)
    return StreamingResponse(
        render_invoice_docx(inv),
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{invoice_filename(inv)}"'},
    )
