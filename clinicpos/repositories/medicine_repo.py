"""
Medicine repository: medicines and their stock-adjustment journal.
"""

from typing import List

from sqlalchemy.future import select

from clinicpos.models.medicine import Medicine, StockAdjustment
from clinicpos.repositories.base import BaseRepository


class MedicineRepository(BaseRepository[Medicine]):
    """Concrete repository for :class:`Medicine` entities."""

    async def list_by_name(self, active_only: bool = False) -> List[Medicine]:
        stmt = select(self.model)
        if active_only:
            stmt = stmt.where(self.model.is_active.is_(True))  # type: ignore[attr-defined]
        stmt = stmt.order_by(self.model.name)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def adjustments_for(self, medicine_id: int) -> List[StockAdjustment]:
        stmt = (
            select(StockAdjustment)
            .where(StockAdjustment.medicine_id == medicine_id)
            .order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def apply_adjustment(self, medicine: Medicine, adjustment: StockAdjustment) -> Medicine:
        """Write the new stock level and its journal entry in one commit."""

        async def _apply() -> Medicine:
            merged = await self.db.merge(medicine)
            self.db.add(adjustment)
            await self._commit("apply_adjustment")
            await self.db.refresh(merged)
            return merged

        return await self._execute_with_circuit_breaker(_apply)
