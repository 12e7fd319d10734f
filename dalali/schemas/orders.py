# dalali/schemas/orders.py
from datetime import date, datetime
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from .common import Id


# ---- cart --------------------------------------------------------------------
class CartItemOut(BaseModel):
    id: Id
    name: str
    price: float
    weight: float
    dalali_type: str
    buyer_dalali_rate: float
    seller_dalali_rate: float


class CartLineOut(BaseModel):
    id: Id
    quantity: int
    price: Optional[float] = None        # per-line override, None = item price
    effective_price: float
    item: CartItemOut


class CartTotalsOut(BaseModel):
    total: float
    buyer_dalali: float
    seller_dalali: float


class CartOut(BaseModel):
    lines: List[CartLineOut]
    totals: CartTotalsOut


class CartAddIn(BaseModel):
    item_id: UUID


class CartEditIn(BaseModel):
    # raw values; the service rejects anything that is not a clean number
    price: Optional[Union[int, float, str]] = None
    quantity: Optional[Union[int, float, str]] = None


class CartEditOut(BaseModel):
    line_id: Id
    pending: dict


# ---- orders ------------------------------------------------------------------
class OrderCreateIn(BaseModel):
    buyer_id: UUID
    seller_id: UUID
    order_date: Optional[datetime] = None
    note: Optional[str] = Field(None, max_length=200)


class OrderItemOut(BaseModel):
    item_id: Id
    item_name: Optional[str] = None
    price: float
    weight: float
    quantity: int
    dalali_type: str
    buyer_dalali_rate: float
    seller_dalali_rate: float
    buyer_dalali: Optional[float] = None
    seller_dalali: Optional[float] = None


class OrderOut(BaseModel):
    id: Id
    buyer_id: Id
    seller_id: Id
    buyer_name: Optional[str] = None
    seller_name: Optional[str] = None
    order_date: datetime
    note: Optional[str] = None
    buyer_dalali: float
    seller_dalali: float
    dalali_amount: float
    total_bill_amount: float
    bill_paid: bool = False


class OrderDetailOut(OrderOut):
    items: List[OrderItemOut]


class BillPaidIn(BaseModel):
    bill_paid: bool


class OrderDeletedOut(BaseModel):
    orderId: Id
    buyerId: Id
    sellerId: Id


class MonthlyDalaliOut(BaseModel):
    year: int
    month: int
    buyer_dalali: float
    seller_dalali: float
    total_dalali: float


# ---- invoice -----------------------------------------------------------------
class InvoiceLineOut(BaseModel):
    order_id: Id
    order_date: datetime
    counterparty: str
    item_name: str
    quantity: int
    weight: float
    price: float
    dalali_type: str
    rate: float
    commission: float


class InvoiceIssuerOut(BaseModel):
    company_name: Optional[str] = None
    address: Optional[str] = None
    pan_number: Optional[str] = None
    mobile_number: Optional[str] = None


class InvoiceOut(BaseModel):
    stakeholder_id: Id
    stakeholder_name: str
    stakeholder_type: str
    issuer: InvoiceIssuerOut
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    lines: List[InvoiceLineOut]
    total_commission: float
