"""
Pydantic schemas for Investment API request / response serialisation.

Share weights arrive raw (``share_percentage`` need not add up to 100); the
service normalizes them before anything is stored.
"""

from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from clinicpos.ledger.shares import ShareInput, ShareRounding, coerce_weight
from clinicpos.models.investment import InvestmentStatus
from clinicpos.schemas.common import Money

# Columns an update may omit but never clear.
_NOT_NULL_ON_UPDATE = ("title", "category", "amount", "return_amount", "status", "start_date", "investors")


class InvestorShareIn(BaseModel):
    """A raw share weight as typed in the share editor."""

    investor_id: Optional[int] = Field(default=None, description="Registered investor, if any")
    name: str = Field(default="", max_length=255, description="Blank rows are dropped")
    share_percentage: Decimal = Field(default=Decimal("0"), description="Raw weight")

    @field_validator("share_percentage", mode="before")
    @classmethod
    def coerce_share(cls, v: Any) -> Decimal:
        """NaN, blanks, negatives and junk all count as a zero weight."""
        return coerce_weight(v)

    def to_input(self) -> ShareInput:
        return ShareInput(
            name=self.name,
            share_percentage=self.share_percentage,
            investor_id=self.investor_id,
        )


class InvestorShareOut(BaseModel):
    investor_id: Optional[int] = None
    name: str
    share_percentage: float
    amount: str = Field(..., description="Allocation, fixed 2-decimal string", examples=["600.00"])


class InvestmentBase(BaseModel):
    """Fields common to investment creation payloads."""

    title: str = Field(..., min_length=1, max_length=255, examples=["Digital X-ray unit"])
    category: str = Field(..., min_length=1, max_length=100, examples=["Equipment"])
    amount: Decimal = Field(..., ge=0, description="Total capital", examples=[1000.00])
    return_amount: Decimal = Field(default=Decimal("0"), ge=0)
    investor_name: Optional[str] = Field(
        default=None, description="Single investor label for investments without shares"
    )
    payment_method: Optional[str] = Field(default="cash", max_length=50)
    status: InvestmentStatus = InvestmentStatus.ACTIVE
    start_date: date
    end_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("title", "category")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class InvestmentCreate(InvestmentBase):
    """Schema for ``POST /investments``."""

    investors: List[InvestorShareIn] = Field(default_factory=list)


class InvestmentUpdate(BaseModel):
    """
    Schema for ``PUT /investments/{id}``.

    Partial: omitted fields keep their value.  Sending ``investors`` or
    ``amount`` re-normalizes the share list.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    return_amount: Optional[Decimal] = Field(default=None, ge=0)
    investor_name: Optional[str] = None
    payment_method: Optional[str] = Field(default=None, max_length=50)
    investors: Optional[List[InvestorShareIn]] = None
    status: Optional[InvestmentStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("title", "category")
    @classmethod
    def validate_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v.strip() if v is not None else v

    @model_validator(mode="after")
    def validate_no_explicit_nulls(self):
        cleared = [f for f in _NOT_NULL_ON_UPDATE if f in self.model_fields_set and getattr(self, f) is None]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class InvestmentResponse(InvestmentBase):
    """Schema returned by investment endpoints."""

    id: int
    amount: Money  # type: ignore[assignment]
    return_amount: Money  # type: ignore[assignment]
    investors: List[InvestorShareOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class InvestmentBatchItem(BaseModel):
    id: int
    amount: Optional[Decimal] = Field(default=None, ge=0)
    investors: Optional[List[InvestorShareIn]] = None


class InvestmentBatchUpdate(BaseModel):
    """Schema for ``POST /investments/batch-update`` (all-or-nothing)."""

    updates: List[InvestmentBatchItem] = Field(..., min_length=1)

    @field_validator("updates")
    @classmethod
    def validate_unique_ids(cls, v: List[InvestmentBatchItem]) -> List[InvestmentBatchItem]:
        ids = [item.id for item in v]
        if len(ids) != len(set(ids)):
            raise ValueError("each investment may appear only once")
        return v


class NormalizePreviewRequest(BaseModel):
    amount: Decimal = Field(..., ge=0)
    investors: List[InvestorShareIn] = Field(default_factory=list)
    method: Optional[ShareRounding] = None


class NormalizePreviewResponse(BaseModel):
    investors: List[InvestorShareOut]
    total_percentage: float
    total_amount: Money
