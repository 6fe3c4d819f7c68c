"""
Pydantic schemas for the medicine inventory.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from clinicpos.models.medicine import AdjustmentType
from clinicpos.schemas.common import Money


class MedicineBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Amoxicillin 500mg"])
    generic_name: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = Field(default=None, max_length=100)
    manufacturer: Optional[str] = Field(default=None, max_length=255)
    batch_no: Optional[str] = Field(default=None, max_length=100)
    expiry_date: Optional[date] = None
    unit: str = Field(default="Box", max_length=50)
    stock_count: int = Field(default=0, ge=0)
    stock_alert: int = Field(default=10, ge=0)
    selling_price: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class MedicineCreate(MedicineBase):
    pass


class MedicineUpdate(BaseModel):
    """Stock is changed through ``adjust-stock`` only, so it is absent here."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    generic_name: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = Field(default=None, max_length=100)
    manufacturer: Optional[str] = Field(default=None, max_length=255)
    batch_no: Optional[str] = Field(default=None, max_length=100)
    expiry_date: Optional[date] = None
    unit: Optional[str] = Field(default=None, max_length=50)
    stock_alert: Optional[int] = Field(default=None, ge=0)
    selling_price: Optional[Decimal] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class MedicineResponse(MedicineBase):
    id: int
    selling_price: Money  # type: ignore[assignment]
    is_low_stock: bool

    model_config = ConfigDict(from_attributes=True)


class StockAdjustmentRequest(BaseModel):
    adjustment_type: AdjustmentType
    quantity: int = Field(..., ge=0)
    reason: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def validate_quantity(self):
        if self.adjustment_type != AdjustmentType.SET and self.quantity == 0:
            raise ValueError("quantity must be positive for add/subtract")
        return self


class StockAdjustmentResponse(BaseModel):
    id: int
    medicine_id: int
    previous_stock: int
    new_stock: int
    adjustment_type: AdjustmentType
    reason: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
