"""
Investor domain model.

An investor is a person or company holding capital shares in one or more
clinic investments.  Shares themselves live on the investment row; this
table is the registry the share editor picks names from.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from clinicpos.models.contribution import Contribution


class Investor(SQLModel, table=True):
    """
    SQLModel table definition for investors.

    ``share_percentage`` is the default weight proposed when the investor is
    added to a new investment; the normalized weight is stored per investment.
    """

    __tablename__ = "investors"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(name) > 0", name="ck_investors_name_not_empty"),
        CheckConstraint(
            "share_percentage >= 0 AND share_percentage <= 100",
            name="ck_investors_share_range",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=255)
    email: Optional[str] = Field(default=None, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None
    share_percentage: Decimal = Field(default=Decimal("100"), max_digits=5, decimal_places=2)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    contributions: List["Contribution"] = Relationship(
        back_populates="investor", sa_relationship_kwargs={"passive_deletes": True}
    )

    def __repr__(self) -> str:
        return f"<Investor id={self.id} name='{self.name}'>"
