"""
Pydantic schemas for Investor API request / response serialisation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from clinicpos.schemas.common import Money


def _strip_required_name(v: str) -> str:
    if not v.strip():
        raise ValueError("name must not be blank")
    return v.strip()


class InvestorBase(BaseModel):
    """Fields common to investor creation payloads."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Full name of the investor",
        examples=["Dr. Sok Dara"],
    )
    email: Optional[EmailStr] = Field(default=None, examples=["dara@example.com"])
    phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None
    share_percentage: Decimal = Field(
        default=Decimal("100"),
        ge=0,
        le=100,
        description="Default weight proposed when the investor joins an investment",
    )

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        return _strip_required_name(v)


class InvestorCreate(InvestorBase):
    """Schema for ``POST /investors``."""

    pass


class InvestorUpdate(BaseModel):
    """Schema for ``PUT /investors/{id}``; only the supplied fields change."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None
    share_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required_name(v)


class InvestorResponse(InvestorBase):
    """Schema returned by all investor endpoints."""

    id: int
    share_percentage: Money  # type: ignore[assignment]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
