"""
Unit tests for InvestmentService: business logic layer.

All repository calls are mocked.  Tests cover:
- share normalization on create and update (investors, amount-only)
- unknown investor references
- batch update: missing ids, single commit
- delete / bulk delete conflicts (contributions recorded)
- ledger assembly and caching
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from clinicpos.core.cache import cache
from clinicpos.core.exceptions import (
    BusinessRuleViolation,
    ConflictException,
    NotFoundException,
)
from clinicpos.ledger.reconcile import LedgerStatus, reconcile
from clinicpos.schemas.investment import (
    InvestmentBatchItem,
    InvestmentCreate,
    InvestmentUpdate,
    InvestorShareIn,
    NormalizePreviewRequest,
)
from clinicpos.services.investment_service import InvestmentService

from .conftest import (
    INVESTMENT_ID,
    INVESTOR_ID,
    make_contribution,
    make_investment,
    make_investor,
    repo_mock,
)

# ────────────────────────────────────────────────────────────────────────────
# Fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def invest_repo():
    repo = repo_mock()
    repo.create.side_effect = lambda inv: inv
    repo.update.side_effect = lambda inv: inv
    repo.update_many.side_effect = lambda invs: list(invs)
    return repo


@pytest.fixture()
def investor_repo():
    return repo_mock()


@pytest.fixture()
def contribution_repo():
    return repo_mock()


@pytest.fixture()
def service(invest_repo, investor_repo, contribution_repo):
    return InvestmentService(invest_repo, investor_repo, contribution_repo)


def _create_input(**overrides) -> InvestmentCreate:
    data = {
        "title": "Ultrasound machine",
        "category": "Equipment",
        "amount": Decimal("1000"),
        "start_date": date(2026, 3, 1),
        "investors": [
            {"name": "Alice", "share_percentage": 60},
            {"name": "Bob", "share_percentage": 40},
        ],
    }
    data.update(overrides)
    return InvestmentCreate(**data)


def _amounts(investment):
    return [(s["name"], s["share_percentage"], s["amount"]) for s in investment.investors]


# ────────────────────────────────────────────────────────────────────────────
# create_investment
# ────────────────────────────────────────────────────────────────────────────


class TestCreateInvestment:
    @pytest.mark.asyncio
    async def test_stores_normalized_shares(self, service, invest_repo):
        created = await service.create_investment(_create_input())

        invest_repo.create.assert_awaited_once()
        assert _amounts(created) == [("Alice", 60.0, "600.00"), ("Bob", 40.0, "400.00")]
        assert created.investor_name == "Alice, Bob"

    @pytest.mark.asyncio
    async def test_raw_weights_are_scaled(self, service):
        created = await service.create_investment(
            _create_input(
                investors=[
                    {"name": "Alice", "share_percentage": 3},
                    {"name": "  ", "share_percentage": 99},
                    {"name": "Bob", "share_percentage": 1},
                ]
            )
        )
        assert _amounts(created) == [("Alice", 75.0, "750.00"), ("Bob", 25.0, "250.00")]

    @pytest.mark.asyncio
    async def test_legacy_single_investor_label_kept(self, service):
        created = await service.create_investment(
            _create_input(investors=[], investor_name="Dr. Dara")
        )
        assert created.investors == []
        assert created.investor_name == "Dr. Dara"

    @pytest.mark.asyncio
    async def test_unknown_investor_reference(self, service, investor_repo, invest_repo):
        investor_repo.get_many.return_value = [make_investor(id=INVESTOR_ID)]

        with pytest.raises(NotFoundException) as exc_info:
            await service.create_investment(
                _create_input(
                    investors=[
                        {"investor_id": INVESTOR_ID, "name": "Alice", "share_percentage": 50},
                        {"investor_id": 99, "name": "Ghost", "share_percentage": 50},
                    ]
                )
            )
        assert "99" in exc_info.value.message
        invest_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_integrity_error_becomes_business_rule(self, service, invest_repo):
        invest_repo.create.side_effect = IntegrityError("INSERT", {}, Exception("check"))

        with pytest.raises(BusinessRuleViolation):
            await service.create_investment(_create_input())
        invest_repo.db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalidates_investments_and_ledger(self, service):
        cache.set("investments:list:0:100", ["stale"])
        cache.set("ledger:all", ["stale"])
        cache.set("bills:list", ["kept"])

        await service.create_investment(_create_input())

        assert cache.get("investments:list:0:100") is None
        assert cache.get("ledger:all") is None
        assert cache.get("bills:list") == ["kept"]


# ────────────────────────────────────────────────────────────────────────────
# update_investment
# ────────────────────────────────────────────────────────────────────────────


class TestUpdateInvestment:
    @pytest.mark.asyncio
    async def test_amount_change_renormalizes_stored_shares(self, service, invest_repo):
        invest_repo.get.return_value = make_investment(
            shares=[("Alice", 60, INVESTOR_ID), ("Bob", 40, None)]
        )

        updated = await service.update_investment(
            INVESTMENT_ID, InvestmentUpdate(amount=Decimal("2500"))
        )

        assert _amounts(updated) == [("Alice", 60.0, "1500.00"), ("Bob", 40.0, "1000.00")]
        assert updated.investors[0]["investor_id"] == INVESTOR_ID

    @pytest.mark.asyncio
    async def test_new_share_list_replaces_old(self, service, invest_repo):
        invest_repo.get.return_value = make_investment(shares=[("Alice", 100, None)])

        updated = await service.update_investment(
            INVESTMENT_ID,
            InvestmentUpdate(investors=[InvestorShareIn(name="Carol", share_percentage=1)]),
        )

        assert _amounts(updated) == [("Carol", 100.0, "1000.00")]
        assert updated.investor_name == "Carol"

    @pytest.mark.asyncio
    async def test_clearing_shares_drops_joined_label(self, service, invest_repo):
        invest_repo.get.return_value = make_investment(
            shares=[("Alice", 60, None), ("Bob", 40, None)]
        )

        updated = await service.update_investment(INVESTMENT_ID, InvestmentUpdate(investors=[]))

        assert updated.investors == []
        assert updated.investor_name is None
        assert reconcile([updated], []) == []

    @pytest.mark.asyncio
    async def test_clearing_shares_with_new_single_label(self, service, invest_repo):
        invest_repo.get.return_value = make_investment(shares=[("Alice", 1, None)])

        updated = await service.update_investment(
            INVESTMENT_ID, InvestmentUpdate(investors=[], investor_name="Dr. Dara")
        )

        assert updated.investor_name == "Dr. Dara"
        assert [r.investor_name for r in reconcile([updated], [])] == ["Dr. Dara"]

    @pytest.mark.asyncio
    async def test_amount_change_keeps_legacy_label(self, service, invest_repo):
        invest_repo.get.return_value = make_investment(investor_name="Dr. Dara")

        updated = await service.update_investment(
            INVESTMENT_ID, InvestmentUpdate(amount=Decimal("2000"))
        )

        assert updated.investors == []
        assert updated.investor_name == "Dr. Dara"

    @pytest.mark.asyncio
    async def test_title_only_leaves_shares_untouched(self, service, invest_repo):
        investment = make_investment(shares=[("Alice", 60, None), ("Bob", 40, None)])
        before = list(investment.investors)
        invest_repo.get.return_value = investment

        updated = await service.update_investment(INVESTMENT_ID, InvestmentUpdate(title="CT"))

        assert updated.title == "CT"
        assert updated.investors == before

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, service, invest_repo):
        invest_repo.get.return_value = make_investment(start_date=date(2026, 1, 5))

        with pytest.raises(BusinessRuleViolation):
            await service.update_investment(
                INVESTMENT_ID, InvestmentUpdate(end_date=date(2025, 12, 31))
            )
        invest_repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_investment(self, service, invest_repo):
        invest_repo.get.return_value = None

        with pytest.raises(NotFoundException):
            await service.update_investment(INVESTMENT_ID, InvestmentUpdate(title="CT"))


# ────────────────────────────────────────────────────────────────────────────
# batch_update
# ────────────────────────────────────────────────────────────────────────────


class TestBatchUpdate:
    @pytest.mark.asyncio
    async def test_updates_all_in_one_call(self, service, invest_repo):
        first = make_investment(id=1, shares=[("Alice", 1, None)])
        second = make_investment(id=2, shares=[("Bob", 1, None)])
        invest_repo.get_many.return_value = [first, second]

        updated = await service.batch_update(
            [
                InvestmentBatchItem(id=1, amount=Decimal("300")),
                InvestmentBatchItem(
                    id=2,
                    investors=[
                        InvestorShareIn(name="Bob", share_percentage=1),
                        InvestorShareIn(name="Carol", share_percentage=1),
                    ],
                ),
            ]
        )

        invest_repo.update_many.assert_awaited_once()
        assert _amounts(updated[0]) == [("Alice", 100.0, "300.00")]
        assert _amounts(updated[1]) == [("Bob", 50.0, "500.00"), ("Carol", 50.0, "500.00")]

    @pytest.mark.asyncio
    async def test_empty_share_list_clears_label(self, service, invest_repo):
        invest_repo.get_many.return_value = [make_investment(id=1, shares=[("Alice", 1, None)])]

        updated = await service.batch_update([InvestmentBatchItem(id=1, investors=[])])

        assert (updated[0].investors, updated[0].investor_name) == ([], None)

    @pytest.mark.asyncio
    async def test_one_missing_id_fails_whole_batch(self, service, invest_repo):
        invest_repo.get_many.return_value = [make_investment(id=1)]

        with pytest.raises(NotFoundException) as exc_info:
            await service.batch_update(
                [InvestmentBatchItem(id=1, amount=Decimal("5")), InvestmentBatchItem(id=42)]
            )
        assert "42" in exc_info.value.message
        invest_repo.update_many.assert_not_awaited()


# ────────────────────────────────────────────────────────────────────────────
# delete / bulk delete
# ────────────────────────────────────────────────────────────────────────────


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_success(self, service, invest_repo):
        invest_repo.delete.return_value = True
        await service.delete_investment(INVESTMENT_ID)
        invest_repo.delete.assert_awaited_once_with(INVESTMENT_ID)

    @pytest.mark.asyncio
    async def test_delete_missing(self, service, invest_repo):
        invest_repo.delete.return_value = False
        with pytest.raises(NotFoundException):
            await service.delete_investment(INVESTMENT_ID)

    @pytest.mark.asyncio
    async def test_delete_with_contributions_conflicts(self, service, invest_repo):
        invest_repo.delete.side_effect = IntegrityError("DELETE", {}, Exception("fk"))

        with pytest.raises(ConflictException) as exc_info:
            await service.delete_investment(INVESTMENT_ID)
        assert exc_info.value.status_code == 409
        invest_repo.db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bulk_delete_dedupes_ids(self, service, invest_repo):
        invest_repo.delete_many.return_value = 2

        assert await service.bulk_delete([3, 1, 3]) == 2
        invest_repo.delete_many.assert_awaited_once_with([1, 3])

    @pytest.mark.asyncio
    async def test_bulk_delete_is_all_or_nothing(self, service, invest_repo):
        invest_repo.delete_many.side_effect = IntegrityError("DELETE", {}, Exception("fk"))

        with pytest.raises(ConflictException, match="nothing was deleted"):
            await service.bulk_delete([1, 2])


# ────────────────────────────────────────────────────────────────────────────
# preview + ledger
# ────────────────────────────────────────────────────────────────────────────


def test_preview_normalization_reports_totals(service):
    shares, total_pct, total_amount = service.preview_normalization(
        NormalizePreviewRequest(
            amount=Decimal("8500"),
            investors=[InvestorShareIn(name=n, share_percentage=1) for n in "ABC"],
            method="largest_remainder",
        )
    )
    assert [s.amount_str for s in shares] == ["2833.34", "2833.33", "2833.33"]
    assert total_pct == Decimal("100.00")
    assert total_amount == Decimal("8500.00")


class TestGetLedger:
    @pytest.mark.asyncio
    async def test_single_investment(self, service, invest_repo, contribution_repo):
        invest_repo.get.return_value = make_investment(shares=[("Alice", 60, None), ("Bob", 40, None)])
        contribution_repo.list_for_investments.return_value = [
            make_contribution(investor_name="Alice", amount=Decimal("600")),
        ]

        rows, summary = await service.get_ledger(INVESTMENT_ID)

        contribution_repo.list_for_investments.assert_awaited_once_with([INVESTMENT_ID])
        assert [r.status for r in rows] == [LedgerStatus.FULLY_PAID, LedgerStatus.DUE]
        assert summary.due == Decimal("400.00")

    @pytest.mark.asyncio
    async def test_all_investments_cached(self, service, invest_repo, contribution_repo):
        invest_repo.list_all.return_value = [make_investment(shares=[("Alice", 1, None)])]
        contribution_repo.list_for_investments.return_value = []

        first = await service.get_ledger()
        second = await service.get_ledger()

        assert first is second
        invest_repo.list_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_investment(self, service, invest_repo):
        invest_repo.get.return_value = None
        with pytest.raises(NotFoundException):
            await service.get_ledger(999)
