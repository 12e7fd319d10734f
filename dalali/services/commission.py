# dalali/services/commission.py
"""
Dalali (commission) calculation.

Every place that shows or stores a commission goes through `line_commission`:
cart totals, order creation, order details and the stakeholder invoice.

Two bases exist:
  - "%"            rate percent of the line amount (price * weight * quantity)
  - "Per Quintal"  rate per quintal, i.e. (rate * weight * quantity) / 100

Items store the type as entered ("%" or "Per Quintal"); order items store the
short code ("%" or "Q"). Both spellings parse to the same `DalaliType`.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Union

from ..errors import ValidationError

HUNDRED = Decimal(100)


class DalaliType(str, Enum):
    PERCENT = "%"
    PER_QUINTAL = "Q"


class Party(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"


_QUINTAL_ALIASES = {"q", "per quintal", "perquintal", "per_quintal"}


def parse_dalali_type(value: Any) -> DalaliType:
    if isinstance(value, DalaliType):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"unrecognized dalali type: {value!r}")
    s = value.strip()
    if s == "%":
        return DalaliType.PERCENT
    if s.lower() in _QUINTAL_ALIASES:
        return DalaliType.PER_QUINTAL
    raise ValidationError(f"unrecognized dalali type: {value!r}")


def normalize_dalali_type(value: Any) -> str:
    """Short code stored on order items: "%" or "Q"."""
    return parse_dalali_type(value).value


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Convert a number (or numeric string) to Decimal; floats go through str."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        value = repr(value)
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number") from None
    if not d.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return d


def to_quantity(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        d = to_decimal(value, "quantity")
    except ValidationError:
        raise ValidationError("quantity must be a whole number") from None
    if d != d.to_integral_value():
        raise ValidationError("quantity must be a whole number")
    return int(d)


@dataclass(frozen=True)
class LineSnapshot:
    """Pricing fields of one line, as the commission needs them."""

    price: Decimal
    weight: Decimal
    quantity: int
    dalali_type: DalaliType
    buyer_dalali_rate: Decimal
    seller_dalali_rate: Decimal

    @classmethod
    def of(cls, line: Union["LineSnapshot", Mapping[str, Any]]) -> "LineSnapshot":
        if isinstance(line, LineSnapshot):
            return line
        return cls(
            price=to_decimal(line["price"], "price"),
            weight=to_decimal(line["weight"], "weight"),
            quantity=to_quantity(line["quantity"]),
            dalali_type=parse_dalali_type(line["dalali_type"]),
            buyer_dalali_rate=to_decimal(line["buyer_dalali_rate"], "buyer_dalali_rate"),
            seller_dalali_rate=to_decimal(line["seller_dalali_rate"], "seller_dalali_rate"),
        )

    def rate(self, party: Party) -> Decimal:
        return self.buyer_dalali_rate if Party(party) is Party.BUYER else self.seller_dalali_rate


def line_amount(line: Union[LineSnapshot, Mapping[str, Any]]) -> Decimal:
    snap = LineSnapshot.of(line)
    return snap.price * snap.weight * snap.quantity


def line_commission(line: Union[LineSnapshot, Mapping[str, Any]], party: Union[Party, str]) -> Decimal:
    """Commission owed by `party` for one line."""
    snap = LineSnapshot.of(line)
    rate = snap.rate(Party(party))
    if snap.dalali_type is DalaliType.PERCENT:
        return rate / HUNDRED * (snap.price * snap.weight * snap.quantity)
    return rate * snap.weight * snap.quantity / HUNDRED
