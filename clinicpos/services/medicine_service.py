"""
Medicine service: inventory CRUD and journalled stock adjustments.

``stock_count`` is only ever changed through :meth:`adjust_stock` (or by
bills); each change writes a :class:`StockAdjustment` row in the same commit.
"""

import logging
from typing import List

from sqlalchemy.exc import IntegrityError

from clinicpos.core.cache import MEDICINES, cache
from clinicpos.core.exceptions import BusinessRuleViolation, ConflictException, NotFoundException
from clinicpos.models.medicine import AdjustmentType, Medicine, StockAdjustment
from clinicpos.repositories.medicine_repo import MedicineRepository
from clinicpos.schemas.medicine import MedicineCreate, MedicineUpdate, StockAdjustmentRequest

logger = logging.getLogger(__name__)


def apply_adjustment(current: int, adjustment_type: AdjustmentType, quantity: int) -> int:
    """
    The stock level after an adjustment.

    Raises :class:`BusinessRuleViolation` if a subtraction would go below zero.
    """
    if adjustment_type == AdjustmentType.SET:
        return quantity
    if adjustment_type == AdjustmentType.ADD:
        return current + quantity
    if quantity > current:
        raise BusinessRuleViolation(
            f"Cannot subtract {quantity}: only {current} in stock",
            details={"stock_count": current, "requested": quantity},
        )
    return current - quantity


class MedicineService:
    """Encapsulates CRUD + stock adjustments for :class:`Medicine`."""

    def __init__(self, medicine_repo: MedicineRepository):
        self._repo = medicine_repo

    # ── Queries ──

    async def get_all_medicines(self, active_only: bool = False) -> List[Medicine]:
        cache_key = f"{MEDICINES}list:{active_only}"
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        medicines = await self._repo.list_by_name(active_only=active_only)
        cache.set(cache_key, medicines)
        return medicines

    async def get_medicine(self, medicine_id: int) -> Medicine:
        cache_key = f"{MEDICINES}{medicine_id}"
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        medicine = await self._repo.get(medicine_id)
        if not medicine:
            raise NotFoundException("Medicine", medicine_id)
        cache.set(cache_key, medicine)
        return medicine

    async def get_adjustments(self, medicine_id: int) -> List[StockAdjustment]:
        await self.get_medicine(medicine_id)
        return await self._repo.adjustments_for(medicine_id)

    # ── Commands ──

    async def create_medicine(self, medicine_in: MedicineCreate) -> Medicine:
        medicine = Medicine(**medicine_in.model_dump())
        try:
            created = await self._repo.create(medicine)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError creating medicine: %s", exc)
            raise BusinessRuleViolation(
                "Medicine data violates a database constraint. Check all fields."
            )
        cache.invalidate(MEDICINES)
        logger.info("Created medicine %s (%s, stock %d)", created.id, created.name, created.stock_count)
        return created

    async def update_medicine(self, medicine_id: int, medicine_in: MedicineUpdate) -> Medicine:
        medicine = await self._repo.get(medicine_id)
        if not medicine:
            raise NotFoundException("Medicine", medicine_id)

        for key, value in medicine_in.model_dump(exclude_unset=True).items():
            setattr(medicine, key, value)

        try:
            updated = await self._repo.update(medicine)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError updating medicine %s: %s", medicine_id, exc)
            raise BusinessRuleViolation(
                "Medicine update violates a database constraint. Check all fields."
            )
        cache.invalidate(MEDICINES)
        logger.info("Updated medicine %s", updated.id)
        return updated

    async def delete_medicine(self, medicine_id: int) -> None:
        try:
            deleted = await self._repo.delete(medicine_id)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("Refused to delete medicine %s: %s", medicine_id, exc)
            raise ConflictException(f"Medicine {medicine_id} is still referenced")
        if not deleted:
            raise NotFoundException("Medicine", medicine_id)
        cache.invalidate(MEDICINES)
        logger.info("Deleted medicine %s", medicine_id)

    async def adjust_stock(self, medicine_id: int, request: StockAdjustmentRequest) -> Medicine:
        """Set, add to or subtract from the stock and journal the change."""
        medicine = await self._repo.get(medicine_id)
        if not medicine:
            raise NotFoundException("Medicine", medicine_id)

        previous = medicine.stock_count
        try:
            new_stock = apply_adjustment(previous, request.adjustment_type, request.quantity)
        except BusinessRuleViolation:
            logger.warning(
                "Rejected stock adjustment on medicine %s: %s %d from %d",
                medicine_id,
                request.adjustment_type.value,
                request.quantity,
                previous,
            )
            raise

        medicine.stock_count = new_stock
        adjustment = StockAdjustment(
            medicine_id=medicine_id,
            previous_stock=previous,
            new_stock=new_stock,
            adjustment_type=request.adjustment_type,
            reason=request.reason,
        )
        updated = await self._repo.apply_adjustment(medicine, adjustment)
        cache.invalidate(MEDICINES)
        logger.info(
            "Medicine %s stock %d -> %d (%s)",
            medicine_id,
            previous,
            new_stock,
            request.adjustment_type.value,
            extra={"medicine_id": medicine_id, "stock_before": previous, "stock_after": new_stock},
        )
        return updated
