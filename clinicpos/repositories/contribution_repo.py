"""
Contribution repository: data access for the ``contributions`` table.

Uses the composite index ``ix_contributions_investment_date`` for the
per-investment listing.
"""

from typing import List, Optional, Sequence

from sqlalchemy.future import select

from clinicpos.models.contribution import Contribution
from clinicpos.repositories.base import BaseRepository


class ContributionRepository(BaseRepository[Contribution]):
    """Concrete repository for :class:`Contribution` entities."""

    async def list_filtered(
        self,
        investment_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 1000,
    ) -> List[Contribution]:
        """Contributions newest first, optionally limited to one investment."""
        stmt = select(self.model)
        if investment_id is not None:
            stmt = stmt.where(self.model.investment_id == investment_id)
        stmt = stmt.order_by(self.model.date.desc(), self.model.id.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_investments(self, investment_ids: Sequence[int]) -> List[Contribution]:
        """All contributions of the given investments, oldest first."""
        if not investment_ids:
            return []
        stmt = (
            select(self.model)
            .where(self.model.investment_id.in_(list(investment_ids)))
            .order_by(self.model.date, self.model.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
