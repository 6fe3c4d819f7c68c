"""
Investment domain model.

A capital outlay of the clinic (equipment, expansion, …) funded by one or
more investors.  The normalized share list is stored as JSON on the row:
``[{"investor_id": 3, "name": "Alice", "share_percentage": 60.0, "amount": "600.00"}, …]``.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, CheckConstraint, Column
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from clinicpos.models.contribution import Contribution


class InvestmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


INVESTMENT_CATEGORIES = (
    "Equipment",
    "Real Estate",
    "Expansion",
    "Technology",
    "Marketing",
    "Training",
    "Research",
    "Other",
)


class Investment(SQLModel, table=True):
    """
    SQLModel table definition for investments.

    - ``amount`` and ``return_amount`` are DECIMAL(12,2).
    - ``investor_name`` is a display label: the comma-joined share names, or
      the single free-text investor of rows created before share lists.
    """

    __tablename__ = "investments"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_investments_amount_non_negative"),
        CheckConstraint("length(title) > 0", name="ck_investments_title_not_empty"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(index=True, max_length=255)
    category: str = Field(max_length=100)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    return_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    investor_name: Optional[str] = None
    investors: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False, default=list)
    )
    payment_method: Optional[str] = Field(default="cash", max_length=50)
    status: InvestmentStatus = Field(default=InvestmentStatus.ACTIVE)
    start_date: date = Field(index=True)
    end_date: Optional[date] = None
    notes: Optional[str] = None

    contributions: List["Contribution"] = Relationship(
        back_populates="investment", sa_relationship_kwargs={"passive_deletes": "all"}
    )

    def __repr__(self) -> str:
        return f"<Investment id={self.id} title='{self.title}' amount={self.amount}>"
