"""
Pydantic schemas for Contribution API request / response serialisation.
"""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from clinicpos.schemas.common import Money


class ContributionBase(BaseModel):
    investment_id: int = Field(..., description="Investment the payment is made toward")
    investor_id: Optional[int] = Field(default=None, description="Registered investor, if known")
    investor_name: str = Field(..., min_length=1, max_length=255, examples=["Dr. Sok Dara"])
    amount: Decimal = Field(..., gt=0, examples=[250.00])
    date: dt.date
    category: Optional[str] = Field(default=None, max_length=100)
    payment_slip: Optional[str] = None
    note: Optional[str] = None

    @field_validator("investor_name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("investor_name must not be blank")
        return v.strip()


class ContributionCreate(ContributionBase):
    """Schema for ``POST /contributions``."""

    pass


class ContributionUpdate(BaseModel):
    """Schema for ``PUT|PATCH /contributions/{id}``; only supplied fields change."""

    investment_id: Optional[int] = None
    investor_id: Optional[int] = None
    investor_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    date: Optional[dt.date] = None
    category: Optional[str] = Field(default=None, max_length=100)
    payment_slip: Optional[str] = None
    note: Optional[str] = None

    @field_validator("investor_name")
    @classmethod
    def validate_name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("investor_name must not be blank")
        return v

    @model_validator(mode="after")
    def validate_no_explicit_nulls(self):
        cleared = [
            f
            for f in ("investment_id", "investor_name", "amount", "date")
            if f in self.model_fields_set and getattr(self, f) is None
        ]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class ContributionResponse(ContributionBase):
    id: int
    amount: Money  # type: ignore[assignment]
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class ImportResult(BaseModel):
    """Outcome of a spreadsheet import."""

    imported: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)
