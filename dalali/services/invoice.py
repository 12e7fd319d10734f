# dalali/services/invoice.py
"""Commission invoice for one stakeholder over a date range."""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List, Optional

from docx import Document

from ..db import get_pool, store
from ..errors import NotFoundError, ValidationError
from ..utils.formatting import format_currency
from .commission import LineSnapshot, Party, line_commission
from .orders import end_of_day, start_of_day

logger = logging.getLogger(__name__)

COLUMNS = ["Date", "Counterparty", "Item", "Qty", "Weight", "Price", "Type", "Rate", "Commission"]


def _invoice_line(row: Dict[str, Any], party: Party) -> Dict[str, Any]:
    snap = LineSnapshot.of(row)
    return {
        "order_id": row["order_id"],
        "order_date": row["order_date"],
        "counterparty": row["seller_name"] if party is Party.BUYER else row["buyer_name"],
        "item_name": row["item_name"],
        "quantity": snap.quantity,
        "weight": snap.weight,
        "price": snap.price,
        "dalali_type": snap.dalali_type.value,
        "rate": snap.rate(party),
        "commission": line_commission(snap, party),
    }


async def build_invoice(
    user_id: str,
    stakeholder_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Dict[str, Any]:
    """
    One line per order item. The rate and commission are the ones for the
    stakeholder's own side, computed from the order item snapshot.
    """
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start date is after end date")
    pool = await get_pool()
    async with pool.acquire() as conn:
        stakeholder = await store.fetch_stakeholder(conn, user_id, stakeholder_id)
        if stakeholder is None:
            raise NotFoundError("stakeholder not found")
        profile = await store.fetch_profile(conn, user_id) or {}
        rows = await store.fetch_stakeholder_order_items(
            conn,
            user_id,
            stakeholder_id,
            start_of_day(start_date) if start_date else None,
            end_of_day(end_date) if end_date else None,
        )
    if not rows:
        raise ValidationError("No orders found for this date range")

    party = Party(stakeholder["type"])
    lines: List[Dict[str, Any]] = [_invoice_line(r, party) for r in rows]
    total = sum((ln["commission"] for ln in lines), Decimal(0))
    logger.info("invoice for stakeholder %s: %d lines", stakeholder_id, len(lines))
    return {
        "stakeholder": stakeholder,
        "issuer": {
            "company_name": profile.get("company_name") or stakeholder["name"],
            "address": profile.get("address"),
            "pan_number": profile.get("pan_number"),
            "mobile_number": profile.get("mobile_number"),
        },
        "start_date": start_date,
        "end_date": end_date,
        "lines": lines,
        "total_commission": total,
    }


def _fmt_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    return str(value or "")


def render_invoice_docx(invoice: Dict[str, Any]) -> BytesIO:
    """Lay the invoice out as a Word document."""
    doc = Document()
    stakeholder = invoice["stakeholder"]
    issuer = invoice["issuer"]

    doc.add_heading("Commission Invoice", level=1)
    doc.add_paragraph(f"For: {stakeholder['name']}")
    start, end = invoice.get("start_date"), invoice.get("end_date")
    doc.add_paragraph(
        f"Period: {_fmt_date(start) if start else 'Start'} - {_fmt_date(end) if end else 'End'}"
    )

    doc.add_heading("From", level=2)
    doc.add_paragraph(issuer["company_name"] or "")
    if issuer.get("address"):
        doc.add_paragraph(issuer["address"])
    if issuer.get("pan_number"):
        doc.add_paragraph(f"PAN: {issuer['pan_number']}")
    if issuer.get("mobile_number"):
        doc.add_paragraph(f"Mobile: {issuer['mobile_number']}")

    table = doc.add_table(rows=1, cols=len(COLUMNS))
    for cell, title in zip(table.rows[0].cells, COLUMNS):
        cell.text = title
    for ln in invoice["lines"]:
        cells = table.add_row().cells
        values = [
            _fmt_date(ln["order_date"]),
            ln["counterparty"],
            ln["item_name"],
            str(ln["quantity"]),
            str(ln["weight"]),
            format_currency(ln["price"]),
            ln["dalali_type"],
            str(ln["rate"]),
            format_currency(ln["commission"]),
        ]
        for cell, value in zip(cells, values):
            cell.text = value

    doc.add_paragraph("")
    doc.add_paragraph(f"Total Commission: {format_currency(invoice['total_commission'])}")

    buf = BytesIO()
    doc.save(buf)
    buf.seek(0)
    return buf


def invoice_filename(invoice: Dict[str, Any], today: Optional[date] = None) -> str:
    today = today or date.today()
    name = "-".join(invoice["stakeholder"]["name"].split())
    return f"invoice-{name}-{today:%Y-%m-%d}.docx"
