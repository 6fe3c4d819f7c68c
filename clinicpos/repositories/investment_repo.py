"""
Investment repository: data access for the ``investments`` table.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.future import select

from clinicpos.models.investment import Investment
from clinicpos.repositories.base import BaseRepository


class InvestmentRepository(BaseRepository[Investment]):
    """Concrete repository for :class:`Investment` entities."""

    async def list_recent_first(self, skip: int = 0, limit: int = 100) -> List[Investment]:
        """Investments ordered by ``start_date`` descending, then id."""
        stmt = (
            select(self.model)
            .order_by(self.model.start_date.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_title(self, title: str) -> Optional[Investment]:
        """Case-insensitive title match, used by the contribution importer."""
        stmt = select(self.model).where(func.lower(self.model.title) == title.strip().lower())
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_all(self) -> List[Investment]:
        stmt = select(self.model).order_by(self.model.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
