"""
Bill repository: data access for the ``bills`` table.
"""

from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.future import select

from clinicpos.models.bill import Bill
from clinicpos.models.medicine import Medicine, StockAdjustment
from clinicpos.repositories.base import BaseRepository


class BillRepository(BaseRepository[Bill]):
    """Concrete repository for :class:`Bill` entities."""

    async def list_recent_first(self, skip: int = 0, limit: int = 100) -> List[Bill]:
        stmt = (
            select(self.model)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_bill_no(self, bill_no: str) -> Optional[Bill]:
        stmt = select(self.model).where(self.model.bill_no == bill_no)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def create_with_stock(
        self,
        bill: Bill,
        medicines: Sequence[Medicine],
        adjustments: Sequence[StockAdjustment],
    ) -> Bill:
        """Insert the bill, the decremented medicines and their journal in one commit."""

        async def _create() -> Bill:
            self.db.add(bill)
            for medicine in medicines:
                await self.db.merge(medicine)
            self.db.add_all(list(adjustments))
            await self._commit("create_with_stock")
            await self.db.refresh(bill)
            return bill

        return await self._execute_with_circuit_breaker(_create)

    async def max_id(self) -> int:
        """Highest bill id so far (0 when empty); seeds the next bill number."""
        result = await self.db.execute(select(func.max(self.model.id)))
        return result.scalar_one_or_none() or 0
