"""
Contribution domain model.

A payment an investor made toward their share of one investment.
``investor_name`` is always stored as a label; ``investor_id`` is the stable
link used for ledger matching whenever it is known.
"""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Index
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from clinicpos.models.investment import Investment
    from clinicpos.models.investor import Investor


class Contribution(SQLModel, table=True):
    """SQLModel table definition for contributions."""

    __tablename__ = "contributions"  # type: ignore[assignment]

    # Covers: WHERE investment_id = ? ORDER BY date DESC
    __table_args__ = (
        Index("ix_contributions_investment_date", "investment_id", "date"),
        CheckConstraint("amount > 0", name="ck_contributions_amount_positive"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    investment_id: int = Field(
        foreign_key="investments.id",
        index=True,
        ondelete="RESTRICT",  # an investment with payments cannot be deleted
    )
    investor_id: Optional[int] = Field(
        default=None,
        foreign_key="investors.id",
        index=True,
        ondelete="SET NULL",  # the name label survives investor removal
    )
    investor_name: str = Field(max_length=255)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    date: dt.date
    category: Optional[str] = Field(default=None, max_length=100)
    payment_slip: Optional[str] = None
    note: Optional[str] = None
    created_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    investment: Optional["Investment"] = Relationship(back_populates="contributions")
    investor: Optional["Investor"] = Relationship(back_populates="contributions")

    def __repr__(self) -> str:
        return (
            f"<Contribution id={self.id} investment={self.investment_id} "
            f"investor='{self.investor_name}' amount={self.amount}>"
        )
