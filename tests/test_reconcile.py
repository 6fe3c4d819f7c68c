"""
Unit tests for ledger reconciliation.
"""

from decimal import Decimal

import pytest

from clinicpos.ledger.reconcile import (
    LedgerRow,
    LedgerStatus,
    reconcile,
    shares_for,
    summarize,
)

from .conftest import make_contribution, make_investment


def _row(share, paid):
    return LedgerRow(
        investment_id=1,
        investment_title="X-ray",
        investor_name="Alice",
        share_amount=Decimal(share),
        paid=Decimal(paid),
    )


class TestLedgerRow:
    @pytest.mark.parametrize(
        "share, paid, due, overpaid, pct, status",
        [
            ("1000", "0", "1000", "0", 0, LedgerStatus.DUE),
            ("1000", "600", "400", "0", 60, LedgerStatus.DUE),
            ("1000", "1000", "0", "0", 100, LedgerStatus.FULLY_PAID),
            ("1000", "1200", "0", "200", 100, LedgerStatus.OVERPAID),
            ("0", "50", "0", "50", 0, LedgerStatus.OVERPAID),
            ("0", "0", "0", "0", 0, LedgerStatus.FULLY_PAID),
            ("3", "2", "1", "0", 67, LedgerStatus.DUE),
        ],
    )
    def test_derived_fields(self, share, paid, due, overpaid, pct, status):
        row = _row(share, paid)
        assert row.due == Decimal(due)
        assert row.overpaid == Decimal(overpaid)
        assert row.paid_pct == pct
        assert row.status == status

    def test_paid_pct_rounds_half_up(self):
        assert _row("200", "1").paid_pct == 1  # 0.5%

    def test_due_and_overpaid_are_exclusive(self):
        for paid in ("0", "999.99", "1000", "1000.01", "5000"):
            row = _row("1000", paid)
            assert row.due == 0 or row.overpaid == 0


class TestSharesFor:
    def test_stored_shares(self):
        inv = make_investment(shares=[("Alice", 60, 1), ("Bob", 40, None)])
        shares = shares_for(inv)
        assert [(s.name, s.amount, s.investor_id) for s in shares] == [
            ("Alice", Decimal("600.00"), 1),
            ("Bob", Decimal("400.00"), None),
        ]

    def test_legacy_investor_name_is_full_share(self):
        inv = make_investment(shares=[], investor_name="Dr. Dara")
        [share] = shares_for(inv)
        assert share.name == "Dr. Dara"
        assert share.share_percentage == 100
        assert share.amount == Decimal("1000.00")

    def test_no_investors_at_all(self):
        inv = make_investment(shares=[])
        inv.investor_name = None
        assert shares_for(inv) == []


class TestReconcile:
    def test_overpayment_by_one_investor(self):
        inv = make_investment(shares=[("Alice", 100, None)])
        contributions = [
            make_contribution(id=1, amount=Decimal("700")),
            make_contribution(id=2, amount=Decimal("500")),
        ]
        [row] = reconcile([inv], contributions)
        assert row.paid == Decimal("1200")
        assert row.due == 0
        assert row.overpaid == Decimal("200")
        assert row.contribution_count == 2
        assert row.status == LedgerStatus.OVERPAID

    def test_rows_follow_share_order(self):
        inv = make_investment(shares=[("Alice", 60, None), ("Bob", 40, None)])
        rows = reconcile([inv], [make_contribution(investor_name="Bob", amount=Decimal("400"))])
        assert [(r.investor_name, r.paid, r.status) for r in rows] == [
            ("Alice", Decimal("0"), LedgerStatus.DUE),
            ("Bob", Decimal("400"), LedgerStatus.FULLY_PAID),
        ]

    def test_investor_id_wins_over_name(self):
        # Alice was renamed; the payment carries her id and the old label.
        inv = make_investment(shares=[("Alice Chan", 100, 1)])
        contribution = make_contribution(investor_name="Alice", investor_id=1, amount=Decimal("250"))
        [row] = reconcile([inv], [contribution])
        assert row.investor_name == "Alice Chan"
        assert row.paid == Decimal("250")

    def test_id_mismatch_does_not_fall_back_to_name(self):
        inv = make_investment(shares=[("Alice", 100, 1)])
        contribution = make_contribution(investor_name="Alice", investor_id=2)
        rows = reconcile([inv], [contribution])
        assert len(rows) == 2
        assert rows[1].investor_id == 2
        assert rows[1].share_amount == 0

    def test_name_matching_is_scoped_to_investment(self):
        first = make_investment(id=1, title="X-ray", shares=[("Alice", 100, None)])
        second = make_investment(id=2, title="Lab", shares=[("Alice", 100, None)])
        rows = reconcile(
            [first, second],
            [make_contribution(investment_id=2, amount=Decimal("300"))],
        )
        assert [(r.investment_id, r.paid) for r in rows] == [(1, 0), (2, Decimal("300"))]

    def test_unmatched_payment_gets_synthetic_row(self):
        inv = make_investment(shares=[("Alice", 100, None)])
        rows = reconcile([inv], [make_contribution(investor_name="Mallory", amount=Decimal("50"))])
        synthetic = rows[-1]
        assert synthetic.investor_name == "Mallory"
        assert synthetic.investment_title == "Digital X-ray unit"
        assert synthetic.share_amount == 0
        assert synthetic.overpaid == Decimal("50")

    def test_repeated_unmatched_payments_share_one_row(self):
        inv = make_investment(shares=[])
        inv.investor_name = None
        rows = reconcile(
            [inv],
            [
                make_contribution(id=1, investor_name="Mallory", amount=Decimal("50")),
                make_contribution(id=2, investor_name="Mallory", amount=Decimal("25")),
            ],
        )
        assert len(rows) == 1
        assert rows[0].paid == Decimal("75")

    def test_contributions_for_other_investments_are_ignored(self):
        inv = make_investment(id=1, shares=[("Alice", 100, None)])
        rows = reconcile([inv], [make_contribution(investment_id=99)])
        assert len(rows) == 1
        assert rows[0].paid == 0

    def test_every_row_has_exclusive_due_and_overpaid(self):
        inv = make_investment(shares=[("A", 1, None), ("B", 1, None), ("C", 1, None)])
        contributions = [
            make_contribution(id=1, investor_name="A", amount=Decimal("333.33")),
            make_contribution(id=2, investor_name="B", amount=Decimal("900")),
            make_contribution(id=3, investor_name="Z", amount=Decimal("1")),
        ]
        for row in reconcile([inv], contributions):
            assert row.due == 0 or row.overpaid == 0


def test_summarize():
    inv = make_investment(shares=[("Alice", 60, None), ("Bob", 40, None)])
    rows = reconcile(
        [inv],
        [
            make_contribution(id=1, investor_name="Alice", amount=Decimal("600")),
            make_contribution(id=2, investor_name="Bob", amount=Decimal("500")),
        ],
    )
    summary = summarize(rows)
    assert summary.share_amount == Decimal("1000.00")
    assert summary.paid == Decimal("1100")
    assert summary.due == 0
    assert summary.overpaid == Decimal("100")
    assert summary.rows == 2
    assert summary.by_status == {"Fully Paid": 1, "Overpaid": 1}
