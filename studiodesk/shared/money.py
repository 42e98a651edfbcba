"""Line-item totals and document numbering for proposals and invoices"""

import re
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

CENT = Decimal("0.01")


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)



def round_money(value) -> float:
    return float(_round(Decimal(str(value))))


def calculate_totals(items: Iterable, tax_rate: float = 0) -> dict:
    """
    Compute subtotal, tax and total for line items.

    Items only need `quantity` and `unit_price` attributes (or keys).
    Line products are summed unrounded and tax is taken on the unrounded
    subtotal; only the returned figures are rounded half-up to 2 decimals.
    """
    amounts = []
    subtotal = Decimal("0")
    for item in items:
        quantity = item["quantity"] if isinstance(item, dict) else item.quantity
        unit_price = item["unit_price"] if isinstance(item, dict) else item.unit_price
        amount = Decimal(str(quantity)) * Decimal(str(unit_price))
        amounts.append(float(_round(amount)))
        subtotal += amount

    tax_amount = subtotal * Decimal(str(tax_rate or 0)) / Decimal("100")
    total = subtotal + tax_amount
    return {
        "amounts": amounts,
        "subtotal": float(_round(subtotal)),
        "tax_amount": float(_round(tax_amount)),
        "total": float(_round(total)),
    }


def next_document_number(prefix: str, existing_numbers: Iterable[str], year: Optional[int] = None) -> str:
    """PREFIX-YYYY-NNN, continuing from the highest number issued this year"""
    year = year or date.today().year
    pattern = re.compile(rf"^{re.escape(prefix)}-{year}-(\d+)$")
    highest = 0
    for number in existing_numbers:
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}-{year}-{highest + 1:03d}"


def calculate_due_date(payment_terms: Optional[str], issue_date: Optional[date] = None) -> date:
    """
    "Due on receipt" -> issue date; "Net N" -> issue date + N days.
    Unrecognised terms fall back to Net 30.
    """
    issue_date = issue_date or date.today()
    terms = (payment_terms or "").strip().lower()
    if terms in ("due on receipt", "on receipt", "immediate"):
        return issue_date
    match = re.fullmatch(r"net\s*(\d+)", terms)
    if match:
        return issue_date + timedelta(days=int(match.group(1)))
    return issue_date + timedelta(days=30)


CURRENCY_SYMBOLS = {"GBP": "£", "USD": "$", "EUR": "€"}


def format_money(amount: float, currency: str = "GBP") -> str:
    symbol = CURRENCY_SYMBOLS.get((currency or "").upper())
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{amount:,.2f} {currency}"
