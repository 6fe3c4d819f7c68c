"""
Investor repository: data access for the ``investors`` table.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.future import select

from clinicpos.models.investor import Investor
from clinicpos.repositories.base import BaseRepository


class InvestorRepository(BaseRepository[Investor]):
    """Concrete repository for :class:`Investor` entities."""

    async def get_by_name(self, name: str) -> Optional[Investor]:
        """Case-insensitive name look-up used for duplicate detection."""
        stmt = select(self.model).where(func.lower(self.model.name) == name.strip().lower())
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_by_name(self) -> List[Investor]:
        stmt = select(self.model).order_by(self.model.name)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
