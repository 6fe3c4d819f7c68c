"""
Share normalization for multi-investor investments.

An investment's capital is split between investors by raw weights that need
not add up to 100.  ``normalize_shares`` rescales the weights to percentages
and derives each investor's allocation of the total amount.

Two rounding methods are available:

``per_row``
    Each percentage and amount is rounded half-up to 2 decimals on its own.
    The percentages may miss 100 by up to ``0.005`` per investor; that drift
    is accepted and not corrected.

``largest_remainder``
    Hamilton apportionment of hundredths of a percent and of cents, so the
    percentages add up to exactly 100.00 and the amounts to exactly the
    total (whenever at least one weight is positive).
"""

import math
from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, List, Literal, Optional, Sequence

ShareRounding = Literal["per_row", "largest_remainder"]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def coerce_weight(value: Any) -> Decimal:
    """
    Turn user input into a non-negative Decimal.

    ``None``, blanks, NaN, infinities, negatives and anything unparsable all
    become zero.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, float) and not math.isfinite(value):
        return ZERO
    try:
        result = Decimal(str(value).strip() or "0")
    except (InvalidOperation, ValueError):
        return ZERO
    if not result.is_finite() or result < 0:
        return ZERO
    return result


@dataclass(frozen=True)
class ShareInput:
    """A raw, not yet normalized share weight."""

    name: str
    share_percentage: Any = ZERO
    investor_id: Optional[int] = None


@dataclass(frozen=True)
class InvestorShare:
    """A normalized share: percentage of the investment plus its allocation."""

    name: str
    share_percentage: Decimal
    amount: Decimal
    investor_id: Optional[int] = None

    @property
    def amount_str(self) -> str:
        return f"{self.amount:.2f}"

    def to_dict(self) -> dict:
        """JSON form stored on the investment row."""
        data: dict = {
            "name": self.name,
            "share_percentage": float(self.share_percentage),
            "amount": self.amount_str,
        }
        if self.investor_id is not None:
            data["investor_id"] = self.investor_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "InvestorShare":
        return cls(
            name=str(data.get("name") or "").strip(),
            share_percentage=coerce_weight(data.get("share_percentage")),
            amount=coerce_weight(data.get("amount")),
            investor_id=data.get("investor_id"),
        )


def _apportion(units: int, weights: Sequence[Decimal]) -> List[int]:
    """
    Split ``units`` whole units in proportion to ``weights``.

    Floors every exact quota, then hands the leftover units one by one to the
    largest fractional remainders; ties go to the earlier entry.
    """
    total = sum(weights, ZERO)
    if total <= 0 or units <= 0:
        return [0] * len(weights)

    quotas = [Decimal(units) * w / total for w in weights]
    floors = [int(q.to_integral_value(rounding=ROUND_FLOOR)) for q in quotas]
    leftover = units - sum(floors)
    order = sorted(range(len(weights)), key=lambda i: (-(quotas[i] - floors[i]), i))
    for i in order[:leftover]:
        floors[i] += 1
    return floors


def _per_row(total_amount: Decimal, entries: List[ShareInput], weights: List[Decimal]):
    weight_sum = sum(weights, ZERO)
    scale = HUNDRED / weight_sum if weight_sum > 0 else ZERO
    shares = []
    for entry, weight in zip(entries, weights):
        pct = round2(weight * scale)
        shares.append(
            InvestorShare(
                name=entry.name.strip(),
                share_percentage=pct,
                amount=round2(total_amount * pct / HUNDRED),
                investor_id=entry.investor_id,
            )
        )
    return shares


def _largest_remainder(
    total_amount: Decimal, entries: List[ShareInput], weights: List[Decimal]
):
    hundredths = _apportion(10000, weights)
    cents = _apportion(int(round2(total_amount) * 100), weights)
    return [
        InvestorShare(
            name=entry.name.strip(),
            share_percentage=Decimal(h) / HUNDRED,
            amount=Decimal(c) / HUNDRED,
            investor_id=entry.investor_id,
        )
        for entry, h, c in zip(entries, hundredths, cents)
    ]


def normalize_shares(
    total_amount: Any,
    entries: Iterable[ShareInput],
    method: ShareRounding = "per_row",
) -> List[InvestorShare]:
    """
    Normalize raw share weights against ``total_amount``.

    Entries with a blank name are dropped before anything else, so they never
    influence the scale.  An empty result means the investment records no
    shares.  If every weight is zero, every percentage and amount is zero.
    Input order is preserved.
    """
    kept = [e for e in entries if (e.name or "").strip()]
    if not kept:
        return []

    total = coerce_weight(total_amount)
    weights = [coerce_weight(e.share_percentage) for e in kept]

    if method == "largest_remainder":
        return _largest_remainder(total, kept, weights)
    return _per_row(total, kept, weights)


def joined_names(shares: Sequence[InvestorShare]) -> Optional[str]:
    """Comma-joined investor names used as the investment's display label."""
    if not shares:
        return None
    return ", ".join(s.name for s in shares)
