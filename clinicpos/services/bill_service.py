"""
Bill service: business logic for patient invoices.

Totals are never taken from the client: subtotal, discount amount, total and
status are recomputed from the line items on create and follow the paid
amount on update.  Creating a bill decrements the stock of every medicine it
sells and journals each change as a ``subtract`` stock adjustment, all in the
same commit as the bill itself.  Stock is floored at zero; overselling is
logged, not refused, since the medicine has physically left the counter.

Caching:
    Reads are cached under ``bills:``.  Creating a bill also invalidates
    ``medicines:``.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from clinicpos.core.cache import BILLS, MEDICINES, cache
from clinicpos.core.config import settings
from clinicpos.core.exceptions import (
    BusinessRuleViolation,
    ConflictException,
    NotFoundException,
)
from clinicpos.ledger.billing import (
    bill_no_matches,
    bill_status,
    compute_bill_totals,
    format_bill_no,
    line_total,
)
from clinicpos.models.bill import Bill, BillStatus
from clinicpos.models.medicine import AdjustmentType, Medicine, StockAdjustment
from clinicpos.repositories.bill_repo import BillRepository
from clinicpos.repositories.medicine_repo import MedicineRepository
from clinicpos.schemas.bill import BillCreate, BillItemIn, BillItemType, BillUpdate

logger = logging.getLogger(__name__)


def _item_to_dict(item: BillItemIn) -> dict:
    return {
        "type": item.type.value,
        "name": item.name.strip(),
        "quantity": str(item.quantity),
        "unit_price": f"{item.unit_price:.2f}",
        "total": f"{line_total(item.quantity, item.unit_price):.2f}",
        "medicine_id": item.medicine_id,
    }


def _matches(bill: Bill, search: str) -> bool:
    needle = search.strip().lower()
    return bill_no_matches(search, bill.bill_no) or needle in bill.patient_name.lower()


class BillService:
    """Encapsulates invoice creation, payment updates and deletion for :class:`Bill`."""

    def __init__(self, bill_repo: BillRepository, medicine_repo: MedicineRepository):
        self._repo = bill_repo
        self._medicine_repo = medicine_repo

    # ── Queries ──

    async def get_all_bills(
        self, search: Optional[str] = None, skip: int = 0, limit: int = 100
    ) -> List[Bill]:
        """
        Bills newest first (cache-backed).

        ``search`` matches the patient name by substring and the invoice
        number forgivingly (``INV-17`` finds ``INV00017``).
        """
        if search and search.strip():
            bills = await self.get_all_bills(limit=100000)
            return [b for b in bills if _matches(b, search)][skip : skip + limit]

        cache_key = f"{BILLS}list:{skip}:{limit}"
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        bills = await self._repo.list_recent_first(skip=skip, limit=limit)
        cache.set(cache_key, bills)
        return bills

    async def get_bill(self, bill_id: int) -> Bill:
        cache_key = f"{BILLS}{bill_id}"
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        bill = await self._repo.get(bill_id)
        if not bill:
            raise NotFoundException("Bill", bill_id)
        cache.set(cache_key, bill)
        return bill

    # ── Commands ──

    async def create_bill(self, bill_in: BillCreate) -> Bill:
        """
        Issue a new bill.

        Raises :class:`NotFoundException` for an unknown medicine and
        :class:`BusinessRuleViolation` for a fractional medicine quantity.
        """
        totals = compute_bill_totals(
            bill_in.items, bill_in.discount_type.value, bill_in.discount_value
        )
        bill_no = await self._next_bill_no()
        bill = Bill(
            bill_no=bill_no,
            patient_name=bill_in.patient_name.strip(),
            items=[_item_to_dict(item) for item in bill_in.items],
            subtotal=totals.subtotal,
            discount=totals.discount_amount,
            discount_type=bill_in.discount_type,
            discount_value=bill_in.discount_value,
            total=totals.total,
            paid_amount=bill_in.paid_amount,
            payment_method=bill_in.payment_method,
            reference_doctor=bill_in.reference_doctor,
            payment_date=bill_in.payment_date,
            status=BillStatus(bill_status(totals.total, bill_in.paid_amount)),
        )
        medicines, adjustments = await self._stock_changes(bill_in.items, bill_no)

        try:
            created = await self._repo.create_with_stock(bill, medicines, adjustments)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError creating bill %s: %s", bill_no, exc)
            raise ConflictException(f"Bill number '{bill_no}' was taken; please retry")

        cache.invalidate(BILLS)
        if medicines:
            cache.invalidate(MEDICINES)
        logger.info(
            "Created bill %s (%s) for %s: total %s, status %s",
            created.id,
            created.bill_no,
            created.patient_name,
            created.total,
            created.status.value,
            extra={"bill_no": created.bill_no},
        )
        return created

    async def update_bill(self, bill_id: int, bill_in: BillUpdate) -> Bill:
        """Record a payment.  Without an explicit ``status`` it follows ``paid_amount``."""
        bill = await self._repo.get(bill_id)
        if not bill:
            raise NotFoundException("Bill", bill_id)

        changes = bill_in.model_dump(exclude_unset=True, exclude={"status"})
        for key, value in changes.items():
            setattr(bill, key, value)

        if bill_in.status is not None:
            bill.status = bill_in.status
        else:
            bill.status = BillStatus(bill_status(bill.total, bill.paid_amount))

        try:
            updated = await self._repo.update(bill)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError updating bill %s: %s", bill_id, exc)
            raise BusinessRuleViolation(
                "Bill update violates a database constraint. Check all fields."
            )
        cache.invalidate(BILLS)
        logger.info("Updated bill %s: paid %s, status %s", updated.id, updated.paid_amount, updated.status.value)
        return updated

    async def delete_bill(self, bill_id: int) -> None:
        """Deleting a bill does not return sold medicine to stock."""
        deleted = await self._repo.delete(bill_id)
        if not deleted:
            raise NotFoundException("Bill", bill_id)
        cache.invalidate(BILLS)
        logger.info("Deleted bill %s", bill_id)

    async def bulk_delete(self, ids: Iterable[int]) -> int:
        deleted = await self._repo.delete_many(sorted(set(ids)))
        cache.invalidate(BILLS)
        logger.info("Bulk-deleted %d bills", deleted)
        return deleted

    # ── Helpers ──

    async def _next_bill_no(self) -> str:
        sequence = await self._repo.max_id() + 1
        bill_no = format_bill_no(settings.INVOICE_PREFIX, sequence)
        while await self._repo.get_by_bill_no(bill_no):
            sequence += 1
            bill_no = format_bill_no(settings.INVOICE_PREFIX, sequence)
        return bill_no

    async def _stock_changes(self, items: List[BillItemIn], bill_no: str):
        """Decremented medicines and the matching journal entries."""
        sold: Dict[int, int] = OrderedDict()
        for item in items:
            if item.type != BillItemType.MEDICINE or item.medicine_id is None:
                continue
            if item.quantity != item.quantity.to_integral_value():
                raise BusinessRuleViolation(
                    f"Medicine '{item.name}' must be sold in whole units"
                )
            sold[item.medicine_id] = sold.get(item.medicine_id, 0) + int(item.quantity)

        if not sold:
            return [], []

        found = {m.id: m for m in await self._medicine_repo.get_many(list(sold))}
        missing = [mid for mid in sold if mid not in found]
        if missing:
            raise NotFoundException("Medicine", ", ".join(str(m) for m in missing))

        medicines: List[Medicine] = []
        adjustments: List[StockAdjustment] = []
        for medicine_id, quantity in sold.items():
            medicine = found[medicine_id]
            previous = medicine.stock_count
            if quantity > previous:
                logger.warning(
                    "Bill %s sells %d of '%s' with only %d in stock",
                    bill_no,
                    quantity,
                    medicine.name,
                    previous,
                    extra={"bill_no": bill_no, "medicine_id": medicine_id},
                )
            medicine.stock_count = max(0, previous - quantity)
            medicines.append(medicine)
            adjustments.append(
                StockAdjustment(
                    medicine_id=medicine_id,
                    previous_stock=previous,
                    new_stock=medicine.stock_count,
                    adjustment_type=AdjustmentType.SUBTRACT,
                    reason=f"Bill {bill_no}: sold {quantity}",
                )
            )
        return medicines, adjustments
