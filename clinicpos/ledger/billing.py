"""
Bill arithmetic and currency helpers.

Totals are computed server-side from the line items so a bill's stored
``subtotal``, ``discount`` and ``total`` always agree with each other.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from clinicpos.ledger.shares import HUNDRED, ZERO, coerce_weight, round2

# Currencies without minor units in everyday use.
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "KHR"})

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "KRW": "₩",
    "VND": "₫",
    "KHR": "៛",
    "THB": "฿",
    "INR": "₹",
}


@dataclass(frozen=True)
class BillTotals:
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal


def line_total(quantity: Any, unit_price: Any) -> Decimal:
    return round2(coerce_weight(quantity) * coerce_weight(unit_price))


def compute_bill_totals(
    items: Iterable[Any], discount_type: str = "amount", discount_value: Any = 0
) -> BillTotals:
    """
    Subtotal, discount and total of a bill.

    ``items`` are objects with ``quantity`` and ``unit_price``.  A
    ``percentage`` discount is taken off the subtotal; any other type is a flat
    amount.  The total never goes below zero.
    """
    subtotal = round2(sum((line_total(i.quantity, i.unit_price) for i in items), ZERO))
    value = coerce_weight(discount_value)
    if discount_type == "percentage":
        discount_amount = round2(subtotal * value / HUNDRED)
    else:
        discount_amount = round2(value)
    total = max(ZERO, subtotal - discount_amount)
    return BillTotals(subtotal=subtotal, discount_amount=discount_amount, total=total)


def bill_status(total: Decimal, paid: Decimal) -> str:
    if paid >= total:
        return "paid"
    if paid > 0:
        return "partial"
    return "unpaid"


def currency_decimals(currency: Optional[str]) -> int:
    return 0 if (currency or "").upper() in ZERO_DECIMAL_CURRENCIES else 2


def convert(amount: Any, rate: Any, currency: Optional[str]) -> Decimal:
    """``amount * rate`` rounded to the target currency's decimals."""
    places = currency_decimals(currency)
    quantum = Decimal(1).scaleb(-places)
    return (coerce_weight(amount) * coerce_weight(rate)).quantize(
        quantum, rounding=ROUND_HALF_UP
    )


def format_money(amount: Any, currency: Optional[str]) -> str:
    """E.g. ``$1,250.00`` or ``₩12,500``."""
    code = (currency or "").upper()
    places = currency_decimals(code)
    value = convert(amount, 1, code)
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} " if code else "")
    return f"{symbol}{value:,.{places}f}"


_BILL_NO_RE = re.compile(r"^([A-Za-z]*)(\d*)$")
_SEPARATORS_RE = re.compile(r"[\s\-_]")


def normalize_bill_no(value: str) -> str:
    """
    Canonical form of an invoice number for forgiving search.

    ``IAR-0017`` and ``IAR00017`` both become ``iar:17``.  Values that are not
    a letter prefix followed by digits are just lower-cased.
    """
    compact = _SEPARATORS_RE.sub("", (value or "").strip())
    match = _BILL_NO_RE.match(compact)
    if not match:
        return compact.lower()
    prefix = match.group(1).lower()
    number = str(int(match.group(2))) if match.group(2) else ""
    return f"{prefix}:{number}"


def bill_no_matches(search: str, bill_no: str) -> bool:
    if not search or not bill_no:
        return False
    if search.lower() == bill_no.lower():
        return True
    return normalize_bill_no(search) == normalize_bill_no(bill_no)


def format_bill_no(prefix: str, sequence: int, width: int = 5) -> str:
    return f"{prefix}{sequence:0{width}d}"
