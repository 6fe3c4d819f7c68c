"""
Medicine inventory models.

``Medicine`` tracks the dispensable stock of one product; every change to
``stock_count`` is journalled as a ``StockAdjustment``.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, Relationship, SQLModel


class AdjustmentType(str, Enum):
    SET = "set"
    ADD = "add"
    SUBTRACT = "subtract"


class Medicine(SQLModel, table=True):
    __tablename__ = "medicines"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("stock_count >= 0", name="ck_medicines_stock_non_negative"),
        CheckConstraint("selling_price >= 0", name="ck_medicines_price_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=255)
    generic_name: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = Field(default=None, max_length=100)
    manufacturer: Optional[str] = Field(default=None, max_length=255)
    batch_no: Optional[str] = Field(default=None, max_length=100)
    expiry_date: Optional[date] = None
    unit: str = Field(default="Box", max_length=50)
    stock_count: int = Field(default=0)
    stock_alert: int = Field(default=10)
    selling_price: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    is_active: bool = Field(default=True)

    adjustments: List["StockAdjustment"] = Relationship(
        back_populates="medicine",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )

    @property
    def is_low_stock(self) -> bool:
        return self.stock_count <= self.stock_alert

    def __repr__(self) -> str:
        return f"<Medicine id={self.id} name='{self.name}' stock={self.stock_count}>"


class StockAdjustment(SQLModel, table=True):
    __tablename__ = "stock_adjustments"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    medicine_id: int = Field(foreign_key="medicines.id", index=True, ondelete="CASCADE")
    previous_stock: int
    new_stock: int
    adjustment_type: AdjustmentType
    reason: Optional[str] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    medicine: Optional[Medicine] = Relationship(back_populates="adjustments")
