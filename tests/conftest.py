"""
Shared pytest fixtures for unit tests.

All tests run with ``USE_SQLITE=true`` and mocked dependencies so that
no real database or network I/O is needed.
"""

import os

os.environ.setdefault("USE_SQLITE", "true")

from datetime import date, datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from clinicpos.core.cache import TTLCache  # noqa: E402
from clinicpos.ledger.shares import ShareInput, normalize_shares  # noqa: E402
from clinicpos.models.bill import Bill, BillStatus, DiscountType  # noqa: E402
from clinicpos.models.contribution import Contribution  # noqa: E402
from clinicpos.models.investment import Investment  # noqa: E402
from clinicpos.models.investor import Investor  # noqa: E402
from clinicpos.models.medicine import Medicine  # noqa: E402

INVESTOR_ID = 1
INVESTOR_ID_2 = 2
INVESTMENT_ID = 10
CONTRIBUTION_ID = 100
BILL_ID = 500
MEDICINE_ID = 7

# ────────────────────────────────────────────────────────────────────────────
# Factory helpers
# ────────────────────────────────────────────────────────────────────────────


def make_investor(
    *,
    id: int = INVESTOR_ID,
    name: str = "Alice",
    email: str | None = "alice@example.com",
    share_percentage: Decimal = Decimal("100"),
) -> Investor:
    return Investor(
        id=id,
        name=name,
        email=email,
        share_percentage=share_percentage,
        created_at=datetime.now(timezone.utc),
    )


def make_investment(
    *,
    id: int = INVESTMENT_ID,
    title: str = "Digital X-ray unit",
    amount: Decimal = Decimal("1000.00"),
    shares: list[tuple[str, int, int | None]] | None = None,
    investor_name: str | None = None,
    start_date: date = date(2026, 1, 5),
) -> Investment:
    """
    ``shares`` are ``(name, raw weight, investor_id)`` tuples; they are
    normalized the way the service would store them.
    """
    normalized = normalize_shares(
        amount, [ShareInput(name, weight, inv_id) for name, weight, inv_id in shares or []]
    )
    return Investment(
        id=id,
        title=title,
        category="Equipment",
        amount=amount,
        investors=[s.to_dict() for s in normalized],
        investor_name=investor_name or (", ".join(s.name for s in normalized) or None),
        start_date=start_date,
    )


def make_contribution(
    *,
    id: int = CONTRIBUTION_ID,
    investment_id: int = INVESTMENT_ID,
    investor_name: str = "Alice",
    investor_id: int | None = None,
    amount: Decimal = Decimal("100.00"),
    paid_on: date = date(2026, 2, 1),
) -> Contribution:
    return Contribution(
        id=id,
        investment_id=investment_id,
        investor_id=investor_id,
        investor_name=investor_name,
        amount=amount,
        date=paid_on,
        created_at=datetime.now(timezone.utc),
    )


def make_medicine(
    *,
    id: int = MEDICINE_ID,
    name: str = "Paracetamol 500mg",
    stock_count: int = 50,
    stock_alert: int = 10,
    selling_price: Decimal = Decimal("0.50"),
) -> Medicine:
    return Medicine(
        id=id,
        name=name,
        stock_count=stock_count,
        stock_alert=stock_alert,
        selling_price=selling_price,
    )


def make_bill(
    *,
    id: int = BILL_ID,
    bill_no: str = "INV00500",
    patient_name: str = "Keo Sreyneang",
    total: Decimal = Decimal("225.00"),
    paid_amount: Decimal = Decimal("0"),
    status: BillStatus = BillStatus.UNPAID,
) -> Bill:
    return Bill(
        id=id,
        bill_no=bill_no,
        patient_name=patient_name,
        items=[
            {
                "type": "service",
                "name": "Consultation",
                "quantity": "1",
                "unit_price": "250.00",
                "total": "250.00",
                "medicine_id": None,
            }
        ],
        subtotal=Decimal("250.00"),
        discount=Decimal("25.00"),
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        total=total,
        paid_amount=paid_amount,
        status=status,
        created_at=datetime.now(timezone.utc),
    )


def repo_mock() -> AsyncMock:
    """An AsyncMock repository whose ``db.rollback`` is awaitable."""
    repo = AsyncMock()
    repo.db = AsyncMock()
    return repo


# ────────────────────────────────────────────────────────────────────────────
# Pytest fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def mock_db():
    """A mocked AsyncSession that tracks add/commit/refresh/rollback calls."""
    session = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.merge = AsyncMock()
    session.delete = AsyncMock()
    return session


@pytest.fixture()
def test_cache():
    """A fresh TTL cache instance for test isolation."""
    return TTLCache(ttl=30.0, max_size=100, enabled=True)


@pytest.fixture()
def disabled_cache():
    """A disabled TTL cache: all operations are no-ops."""
    return TTLCache(ttl=30.0, max_size=100, enabled=False)


@pytest.fixture(autouse=True)
def _clear_global_cache():
    """Clear the global cache before and after each test."""
    from clinicpos.core.cache import cache

    cache.clear()
    yield
    cache.clear()
