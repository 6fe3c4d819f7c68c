"""
Unit tests for bill arithmetic, currency helpers and invoice numbers.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from clinicpos.ledger.billing import (
    bill_no_matches,
    bill_status,
    compute_bill_totals,
    convert,
    currency_decimals,
    format_bill_no,
    format_money,
    line_total,
    normalize_bill_no,
)


def _item(quantity, unit_price):
    return SimpleNamespace(quantity=quantity, unit_price=unit_price)


class TestComputeBillTotals:
    def test_percentage_discount(self):
        totals = compute_bill_totals([_item(1, 200), _item(2, 25)], "percentage", 10)
        assert totals.subtotal == Decimal("250.00")
        assert totals.discount_amount == Decimal("25.00")
        assert totals.total == Decimal("225.00")

    def test_flat_discount(self):
        totals = compute_bill_totals([_item(3, "4.50")], "amount", "1.25")
        assert totals.subtotal == Decimal("13.50")
        assert totals.total == Decimal("12.25")

    def test_total_never_negative(self):
        totals = compute_bill_totals([_item(1, 10)], "amount", 50)
        assert totals.total == 0

    def test_no_items(self):
        totals = compute_bill_totals([], "percentage", 10)
        assert (totals.subtotal, totals.discount_amount, totals.total) == (0, 0, 0)

    def test_rounding_is_half_up(self):
        totals = compute_bill_totals([_item(1, "0.25")], "percentage", 10)
        assert totals.discount_amount == Decimal("0.03")  # 0.025
        assert totals.total == Decimal("0.22")

    def test_line_total(self):
        assert line_total(3, "0.335") == Decimal("1.01")


class TestBillStatus:
    @pytest.mark.parametrize(
        "total, paid, expected",
        [
            ("225", "225", "paid"),
            ("225", "300", "paid"),
            ("225", "100", "partial"),
            ("225", "0", "unpaid"),
            ("0", "0", "paid"),
        ],
    )
    def test_status(self, total, paid, expected):
        assert bill_status(Decimal(total), Decimal(paid)) == expected


class TestCurrency:
    def test_zero_decimal_currencies(self):
        assert currency_decimals("KHR") == 0
        assert currency_decimals("jpy") == 0
        assert currency_decimals("USD") == 2
        assert currency_decimals(None) == 2

    def test_convert_to_riel(self):
        assert convert("225.00", 4100, "KHR") == Decimal("922500")

    def test_convert_rounds_half_up(self):
        assert convert("10.005", 1, "USD") == Decimal("10.01")
        assert convert("1.5", 1, "KRW") == Decimal("2")

    def test_format_money(self):
        assert format_money(Decimal("1250"), "USD") == "$1,250.00"
        assert format_money(Decimal("12500.4"), "KRW") == "₩12,500"
        assert format_money(5, "CHF") == "CHF 5.00"


class TestBillNumbers:
    def test_format(self):
        assert format_bill_no("INV", 17) == "INV00017"

    @pytest.mark.parametrize("value", ["IAR-0017", "IAR00017", "iar 17", "IAR_017"])
    def test_normalize_variants_agree(self, value):
        assert normalize_bill_no(value) == "iar:17"

    def test_normalize_non_standard_values(self):
        assert normalize_bill_no("2024/INV/7") == "2024/inv/7"

    def test_matches(self):
        assert bill_no_matches("IAR-0017", "IAR00017")
        assert bill_no_matches("inv00017", "INV00017")
        assert not bill_no_matches("IAR-0018", "IAR00017")
        assert not bill_no_matches("INV17", "IAR00017")
        assert not bill_no_matches("", "IAR00017")
