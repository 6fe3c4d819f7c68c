"""
Bill domain model.

A patient invoice.  Line items are stored as JSON on the row; the money
columns are recomputed from them by the service on every write.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, CheckConstraint, Column, DateTime
from sqlmodel import Field, SQLModel


class BillStatus(str, Enum):
    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


class DiscountType(str, Enum):
    AMOUNT = "amount"
    PERCENTAGE = "percentage"


class Bill(SQLModel, table=True):
    """
    SQLModel table definition for bills.

    ``discount`` holds the computed discount amount; ``discount_value`` is
    what the cashier typed (a flat amount or a percentage, per
    ``discount_type``).
    """

    __tablename__ = "bills"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_bills_total_non_negative"),
        CheckConstraint("paid_amount >= 0", name="ck_bills_paid_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    bill_no: str = Field(unique=True, index=True, max_length=50)
    patient_name: str = Field(index=True, max_length=255)
    items: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False, default=list)
    )
    subtotal: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    discount_type: DiscountType = Field(default=DiscountType.AMOUNT)
    discount_value: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    total: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    paid_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    payment_method: Optional[str] = Field(default="cash", max_length=50)
    reference_doctor: Optional[str] = Field(default=None, max_length=255)
    payment_date: Optional[date] = None
    status: BillStatus = Field(default=BillStatus.UNPAID)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Bill id={self.id} no={self.bill_no} total={self.total} status={self.status.value}>"
