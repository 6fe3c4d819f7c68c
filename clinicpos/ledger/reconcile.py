"""
Ledger reconciliation: what each investor owes on each investment.

For every (investment, investor) pair the ledger compares the investor's
allocated share amount with the sum of the contributions recorded against it.
Nothing here is persisted; rows are recomputed from the current investments
and contributions on every request.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from clinicpos.ledger.shares import HUNDRED, ZERO, InvestorShare, coerce_weight


class LedgerStatus(str, Enum):
    FULLY_PAID = "Fully Paid"
    DUE = "Due"
    OVERPAID = "Overpaid"


@dataclass
class LedgerRow:
    investment_id: int
    investment_title: str
    investor_name: str
    share_amount: Decimal
    investor_id: Optional[int] = None
    paid: Decimal = ZERO
    contribution_count: int = 0

    @property
    def due(self) -> Decimal:
        return max(ZERO, self.share_amount - self.paid)

    @property
    def overpaid(self) -> Decimal:
        return max(ZERO, self.paid - self.share_amount)

    @property
    def paid_pct(self) -> int:
        if self.share_amount <= 0:
            return 0
        ratio = (self.paid / self.share_amount * HUNDRED).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
        return min(100, int(ratio))

    @property
    def status(self) -> LedgerStatus:
        if self.overpaid > 0:
            return LedgerStatus.OVERPAID
        if self.due > 0:
            return LedgerStatus.DUE
        return LedgerStatus.FULLY_PAID

    def matches(self, investor_id: Optional[int], investor_name: str) -> bool:
        # Stable IDs win when both sides have one; names are the fallback.
        if self.investor_id is not None and investor_id is not None:
            return self.investor_id == investor_id
        return self.investor_name == investor_name


@dataclass
class LedgerSummary:
    share_amount: Decimal = ZERO
    paid: Decimal = ZERO
    due: Decimal = ZERO
    overpaid: Decimal = ZERO
    rows: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)


def shares_for(investment: Any) -> List[InvestorShare]:
    """
    The share list of an investment.

    Investments recorded before multi-investor support carry only a flat
    ``investor_name``; they count as a single 100% share of the full amount.
    """
    raw = getattr(investment, "investors", None) or []
    shares = [InvestorShare.from_dict(item) for item in raw]
    shares = [s for s in shares if s.name]
    if shares:
        return shares

    legacy_name = (getattr(investment, "investor_name", None) or "").strip()
    if legacy_name:
        return [
            InvestorShare(
                name=legacy_name,
                share_percentage=HUNDRED,
                amount=coerce_weight(investment.amount),
            )
        ]
    return []


def reconcile(investments: Iterable[Any], contributions: Iterable[Any]) -> List[LedgerRow]:
    """
    Build one ledger row per investor share and attribute contributions.

    A contribution that matches no current share (for instance after the
    share was removed) gets a synthetic row with a zero share amount so the
    payment still shows up.  Contributions for investments not passed in are
    ignored.
    """
    rows_by_investment: Dict[int, List[LedgerRow]] = {}
    titles: Dict[int, str] = {}
    order: List[int] = []

    for investment in investments:
        rows = [
            LedgerRow(
                investment_id=investment.id,
                investment_title=investment.title,
                investor_name=share.name,
                investor_id=share.investor_id,
                share_amount=share.amount,
            )
            for share in shares_for(investment)
        ]
        rows_by_investment[investment.id] = rows
        titles[investment.id] = investment.title
        order.append(investment.id)

    for contribution in contributions:
        rows = rows_by_investment.get(contribution.investment_id)
        if rows is None:
            continue

        name = (contribution.investor_name or "").strip()
        investor_id = getattr(contribution, "investor_id", None)
        row = next((r for r in rows if r.matches(investor_id, name)), None)
        if row is None:
            row = LedgerRow(
                investment_id=contribution.investment_id,
                investment_title=titles[contribution.investment_id],
                investor_name=name,
                investor_id=investor_id,
                share_amount=ZERO,
            )
            rows.append(row)
        row.paid += coerce_weight(contribution.amount)
        row.contribution_count += 1

    return [row for inv_id in order for row in rows_by_investment[inv_id]]


def summarize(rows: Iterable[LedgerRow]) -> LedgerSummary:
    """Totals across ledger rows, plus a count of rows per status."""
    summary = LedgerSummary()
    for row in rows:
        summary.share_amount += row.share_amount
        summary.paid += row.paid
        summary.due += row.due
        summary.overpaid += row.overpaid
        summary.rows += 1
        key = row.status.value
        summary.by_status[key] = summary.by_status.get(key, 0) + 1
    return summary
