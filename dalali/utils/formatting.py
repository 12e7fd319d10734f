# dalali/utils/formatting.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from ..settings import settings

CENTS = Decimal("0.01")


def round_money(value: Any) -> Decimal:
    """Two decimals, half-up (what the invoices and screens show)."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(value: Any, symbol: Optional[str] = None) -> str:
    """
    Format an amount with the currency symbol and two decimals.
    Example: 1234.5 -> "₹1234.50"
    """
    sym = settings.currency_symbol if symbol is None else symbol
    return f"{sym}{round_money(value)}"
