"""Tests for the stakeholder commission invoice."""
from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from docx import Document

from dalali.errors import ValidationError
from dalali.services.invoice import build_invoice, invoice_filename, render_invoice_docx
from dalali.services.orders import create_order_from_cart
from dalali.utils.formatting import format_currency
from tests.conftest import BUYER, RICE, SELLER, USER, WHEAT, add_cart_line


@pytest.fixture()
def placed_order(db, seed):
    add_cart_line(db, WHEAT, 3)
    add_cart_line(db, RICE, 10)
    db.tables["profiles"][USER] = {
        "id": USER, "company_name": "Shree Dalali Co", "address": "Grain Market",
        "pan_number": "ABCDE1234F", "mobile_number": "9999999999",
    }
    return asyncio.run(create_order_from_cart(USER, BUYER, SELLER))


def test_buyer_invoice_uses_buyer_side(placed_order):
    inv = asyncio.run(build_invoice(USER, BUYER))
    assert {ln["counterparty"] for ln in inv["lines"]} == {"Suresh Farms"}
    assert sorted(ln["commission"] for ln in inv["lines"]) == [Decimal("1"), Decimal("6")]
    assert inv["total_commission"] == Decimal("7")
    assert inv["issuer"]["company_name"] == "Shree Dalali Co"


def test_seller_invoice_uses_seller_side(placed_order):
    inv = asyncio.run(build_invoice(USER, SELLER))
    assert {ln["counterparty"] for ln in inv["lines"]} == {"Ramesh Traders"}
    assert inv["total_commission"] == Decimal("3.8")
    rates = sorted(ln["rate"] for ln in inv["lines"])
    assert rates == [Decimal("1"), Decimal("4")]


def test_empty_range_is_rejected(placed_order):
    with pytest.raises(ValidationError):
        asyncio.run(build_invoice(USER, BUYER, date(2000, 1, 1), date(2000, 1, 31)))


def test_docx_contains_lines_and_total(placed_order):
    inv = asyncio.run(build_invoice(USER, BUYER))
    doc = Document(render_invoice_docx(inv))
    text = "\n".join(p.text for p in doc.paragraphs)
    assert "Commission Invoice" in text
    assert "PAN: ABCDE1234F" in text
    assert f"Total Commission: {format_currency(7)}" in text
    table = doc.tables[0]
    assert len(table.rows) == 1 + len(inv["lines"])


def test_invoice_filename(placed_order):
    inv = asyncio.run(build_invoice(USER, BUYER))
    assert invoice_filename(inv, date(2024, 5, 1)) == "invoice-Ramesh-Traders-2024-05-01.docx"


def test_format_currency():
    assert format_currency(Decimal("6"), "₹") == "₹6.00"
    assert format_currency(0.125, "$") == "$0.13"
    assert format_currency(Decimal("1234.5"), "") == "1234.50"
