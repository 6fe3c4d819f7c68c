"""
Pydantic schemas for Bill API request / response serialisation.

Clients send line items and the discount as typed; subtotal, discount
amount, total, status and the invoice number are always computed server-side.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from clinicpos.core.config import settings
from clinicpos.ledger.billing import convert
from clinicpos.models.bill import BillStatus, DiscountType
from clinicpos.schemas.common import Money


class BillItemType(str, Enum):
    SERVICE = "service"
    MEDICINE = "medicine"
    OTHER = "other"


class BillItemIn(BaseModel):
    type: BillItemType = BillItemType.SERVICE
    name: str = Field(..., min_length=1, max_length=255, examples=["Consultation"])
    quantity: Decimal = Field(..., gt=0, examples=[1])
    unit_price: Decimal = Field(..., ge=0, examples=[15.00])
    medicine_id: Optional[int] = Field(
        default=None, description="Required for medicine items; stock is decremented"
    )

    @model_validator(mode="after")
    def validate_medicine_link(self):
        if self.type == BillItemType.MEDICINE and self.medicine_id is None:
            raise ValueError("medicine items must reference a medicine_id")
        return self


class BillItemOut(BaseModel):
    type: BillItemType
    name: str
    quantity: Money
    unit_price: Money
    total: Money
    medicine_id: Optional[int] = None


class BillCreate(BaseModel):
    """Schema for ``POST /bills``."""

    patient_name: str = Field(..., min_length=1, max_length=255)
    items: List[BillItemIn] = Field(..., min_length=1)
    discount_type: DiscountType = DiscountType.AMOUNT
    discount_value: Decimal = Field(default=Decimal("0"), ge=0)
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: Optional[str] = Field(default="cash", max_length=50)
    reference_doctor: Optional[str] = Field(default=None, max_length=255)
    payment_date: Optional[date] = None

    @model_validator(mode="after")
    def validate_percentage(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class BillUpdate(BaseModel):
    """
    Schema for ``PUT /bills/{id}``.

    Only payment fields are editable once a bill is issued.  ``status`` may be
    forced; otherwise it follows the paid amount.
    """

    paid_amount: Optional[Decimal] = Field(default=None, ge=0)
    payment_method: Optional[str] = Field(default=None, max_length=50)
    payment_date: Optional[date] = None
    status: Optional[BillStatus] = None


class BillResponse(BaseModel):
    id: int
    bill_no: str
    patient_name: str
    items: List[BillItemOut]
    subtotal: Money
    discount: Money
    discount_type: DiscountType
    discount_value: Money
    total: Money
    paid_amount: Money
    payment_method: Optional[str] = None
    reference_doctor: Optional[str] = None
    payment_date: Optional[date] = None
    status: BillStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def currency(self) -> str:
        return settings.PRIMARY_CURRENCY

    @computed_field  # type: ignore[prop-decorator]
    @property
    def secondary_currency(self) -> Optional[str]:
        return settings.SECONDARY_CURRENCY

    @computed_field  # type: ignore[prop-decorator]
    @property
    def secondary_total(self) -> Optional[float]:
        """The total in the secondary currency, when one is configured."""
        if not settings.SECONDARY_CURRENCY:
            return None
        return float(convert(self.total, settings.EXCHANGE_RATE, settings.SECONDARY_CURRENCY))
