"""
Unit tests for Pydantic schemas: validation rules, serializers, edge cases.

Tests cover:
- Investor / Investment / Contribution create + update validators
- raw share weights coerced to numbers
- Bill and stock-adjustment payload rules
- Decimal → float serialization and the secondary-currency total
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from clinicpos.core.config import settings
from clinicpos.schemas.bill import BillCreate, BillItemIn, BillResponse
from clinicpos.schemas.contribution import ContributionCreate, ContributionResponse, ContributionUpdate
from clinicpos.schemas.investment import (
    InvestmentBatchUpdate,
    InvestmentCreate,
    InvestmentResponse,
    InvestmentUpdate,
    InvestorShareIn,
)
from clinicpos.schemas.investor import InvestorCreate, InvestorUpdate
from clinicpos.schemas.medicine import MedicineCreate, StockAdjustmentRequest

from .conftest import make_bill, make_contribution, make_investment

# ────────────────────────────────────────────────────────────────────────────
# Investors
# ────────────────────────────────────────────────────────────────────────────


class TestInvestorSchemas:
    def test_name_stripped(self):
        assert InvestorCreate(name="  Dr. Sok Dara ").name == "Dr. Sok Dara"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="name"):
            InvestorCreate(name="   ")

    def test_default_weight_range(self):
        assert InvestorCreate(name="A").share_percentage == Decimal("100")
        with pytest.raises(ValidationError):
            InvestorCreate(name="A", share_percentage=Decimal("100.01"))

    def test_update_allows_omitting_name(self):
        update = InvestorUpdate(phone="012")
        assert update.model_dump(exclude_unset=True) == {"phone": "012"}

    def test_update_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            InvestorUpdate(name="  ")


# ────────────────────────────────────────────────────────────────────────────
# Investments
# ────────────────────────────────────────────────────────────────────────────


class TestInvestmentSchemas:
    def _valid(self, **overrides):
        data = {
            "title": "  Digital X-ray unit ",
            "category": "Equipment",
            "amount": Decimal("1000"),
            "start_date": date(2026, 1, 5),
        }
        data.update(overrides)
        return InvestmentCreate(**data)

    def test_title_stripped_and_defaults(self):
        investment = self._valid()
        assert investment.title == "Digital X-ray unit"
        assert investment.investors == []
        assert investment.status == "active"

    def test_zero_amount_allowed(self):
        assert self._valid(amount=0).amount == 0

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError, match="amount"):
            self._valid(amount=Decimal("-0.01"))

    def test_blank_category_rejected(self):
        with pytest.raises(ValidationError):
            self._valid(category="  ")

    def test_end_date_before_start_rejected(self):
        with pytest.raises(ValidationError, match="end_date"):
            self._valid(end_date=date(2026, 1, 4))

    @pytest.mark.parametrize("raw", [None, "", "abc", -3, "NaN"])
    def test_junk_share_weights_become_zero(self, raw):
        assert InvestorShareIn(name="Alice", share_percentage=raw).share_percentage == 0

    def test_share_name_defaults_blank(self):
        assert InvestorShareIn(share_percentage=5).name == ""

    @pytest.mark.parametrize("field", ["title", "category", "amount", "start_date", "investors"])
    def test_update_rejects_explicit_null(self, field):
        with pytest.raises(ValidationError, match=f"{field} cannot be null"):
            InvestmentUpdate(**{field: None})

    def test_update_allows_clearing_optional_fields(self):
        update = InvestmentUpdate(end_date=None, investor_name=None, notes=None)
        assert update.model_dump(exclude_unset=True) == {
            "end_date": None,
            "investor_name": None,
            "notes": None,
        }

    def test_update_strips_title(self):
        assert InvestmentUpdate(title="  CT scanner ").title == "CT scanner"

    def test_batch_requires_unique_ids(self):
        with pytest.raises(ValidationError, match="only once"):
            InvestmentBatchUpdate(updates=[{"id": 1}, {"id": 1}])

    def test_batch_requires_one_update(self):
        with pytest.raises(ValidationError):
            InvestmentBatchUpdate(updates=[])

    def test_response_serializes_money_as_numbers(self):
        investment = make_investment(shares=[("Alice", 1, None)])
        data = InvestmentResponse.model_validate(investment).model_dump(mode="json")
        assert data["amount"] == 1000.0
        assert data["return_amount"] == 0.0
        assert data["investors"][0]["amount"] == "1000.00"


# ────────────────────────────────────────────────────────────────────────────
# Contributions
# ────────────────────────────────────────────────────────────────────────────


class TestContributionSchemas:
    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError, match="amount"):
            ContributionCreate(
                investment_id=1, investor_name="Alice", amount=0, date=date(2026, 2, 1)
            )

    def test_investor_name_stripped(self):
        contribution = ContributionCreate(
            investment_id=1, investor_name=" Alice ", amount=5, date=date(2026, 2, 1)
        )
        assert contribution.investor_name == "Alice"

    def test_response_from_model(self):
        data = ContributionResponse.model_validate(make_contribution()).model_dump(mode="json")
        assert data["amount"] == 100.0
        assert data["date"] == "2026-02-01"

    def test_update_rejects_null_investment(self):
        with pytest.raises(ValidationError, match="investment_id cannot be null"):
            ContributionUpdate(investment_id=None)

    def test_update_allows_clearing_investor_link(self):
        assert ContributionUpdate(investor_id=None).model_dump(exclude_unset=True) == {"investor_id": None}


# ────────────────────────────────────────────────────────────────────────────
# Bills + medicines
# ────────────────────────────────────────────────────────────────────────────


class TestBillSchemas:
    def test_medicine_item_needs_medicine_id(self):
        with pytest.raises(ValidationError, match="medicine_id"):
            BillItemIn(type="medicine", name="Syrup", quantity=1, unit_price=3)

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            BillItemIn(name="Consultation", quantity=0, unit_price=3)

    def test_bill_needs_items(self):
        with pytest.raises(ValidationError):
            BillCreate(patient_name="Dara", items=[])

    def test_percentage_capped_at_100(self):
        item = {"name": "Consultation", "quantity": 1, "unit_price": 10}
        with pytest.raises(ValidationError, match="percentage"):
            BillCreate(
                patient_name="Dara", items=[item], discount_type="percentage", discount_value=101
            )
        flat = BillCreate(patient_name="Dara", items=[item], discount_type="amount", discount_value=101)
        assert flat.discount_value == 101

    def test_response_currency_fields(self, monkeypatch):
        monkeypatch.setattr(settings, "SECONDARY_CURRENCY", "KHR")
        monkeypatch.setattr(settings, "EXCHANGE_RATE", Decimal("4100"))

        data = BillResponse.model_validate(make_bill()).model_dump(mode="json")

        assert data["currency"] == settings.PRIMARY_CURRENCY
        assert data["secondary_currency"] == "KHR"
        assert data["secondary_total"] == 922500.0
        assert data["items"][0]["total"] == 250.0


class TestMedicineSchemas:
    def test_stock_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            MedicineCreate(name="Paracetamol", stock_count=-1)

    def test_set_to_zero_is_allowed(self):
        request = StockAdjustmentRequest(adjustment_type="set", quantity=0)
        assert request.quantity == 0

    @pytest.mark.parametrize("kind", ["add", "subtract"])
    def test_add_or_subtract_zero_rejected(self, kind):
        with pytest.raises(ValidationError, match="positive"):
            StockAdjustmentRequest(adjustment_type=kind, quantity=0)


def test_created_at_round_trips_timezone():
    bill = make_bill()
    bill.created_at = datetime(2026, 2, 1, 9, 30, tzinfo=timezone.utc)
    data = BillResponse.model_validate(bill).model_dump(mode="json")
    assert data["created_at"].startswith("2026-02-01T09:30:00")
