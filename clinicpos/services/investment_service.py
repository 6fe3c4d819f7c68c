"""
Investment service: business logic for investments, their share lists and
the investor ledger.

Share lists are always normalized here before they are stored, so the row
invariant holds for every write path: percentages add up to 100 (within the
per-row rounding drift) and the share amounts add up to ``amount``.  Any
change of ``amount`` re-normalizes the stored shares against the new total.

Multi-row writes (``batch_update``, ``bulk_delete``) run as one transaction:
either every row changes or none does.

Caching:
    Reads are cached under ``investments:`` and the derived ledger under
    ``ledger:``.  Every write invalidates both.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError

from clinicpos.core.cache import INVESTMENTS, LEDGER, cache
from clinicpos.core.config import settings
from clinicpos.core.exceptions import (
    BusinessRuleViolation,
    ConflictException,
    NotFoundException,
)
from clinicpos.ledger.reconcile import LedgerRow, LedgerSummary, reconcile, summarize
from clinicpos.ledger.shares import (
    InvestorShare,
    ShareInput,
    ShareRounding,
    joined_names,
    normalize_shares,
)
from clinicpos.models.investment import Investment
from clinicpos.repositories.contribution_repo import ContributionRepository
from clinicpos.repositories.investment_repo import InvestmentRepository
from clinicpos.repositories.investor_repo import InvestorRepository
from clinicpos.schemas.investment import (
    InvestmentBatchItem,
    InvestmentCreate,
    InvestmentUpdate,
    InvestorShareIn,
    NormalizePreviewRequest,
)

logger = logging.getLogger(__name__)


def _stored_inputs(investment: Investment) -> List[ShareInput]:
    """The stored share list turned back into normalizer input."""
    inputs = []
    for raw in investment.investors or []:
        share = InvestorShare.from_dict(raw)
        inputs.append(
            ShareInput(
                name=share.name,
                share_percentage=share.share_percentage,
                investor_id=share.investor_id,
            )
        )
    return inputs


class InvestmentService:
    """
    Encapsulates CRUD, share normalization and ledger reconciliation for
    :class:`Investment`.

    Needs the investor repository to validate ``investor_id`` references in
    share lists and the contribution repository to build the ledger.
    """

    def __init__(
        self,
        invest_repo: InvestmentRepository,
        investor_repo: InvestorRepository,
        contribution_repo: ContributionRepository,
    ):
        self._repo = invest_repo
        self._investor_repo = investor_repo
        self._contribution_repo = contribution_repo

    @property
    def rounding(self) -> ShareRounding:
        return settings.SHARE_ROUNDING

    # ── Queries ──

    async def get_all_investments(self, skip: int = 0, limit: int = 100) -> List[Investment]:
        """Investments newest first (cache-backed)."""
        cache_key = f"{INVESTMENTS}list:{skip}:{limit}"
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        investments = await self._repo.list_recent_first(skip=skip, limit=limit)
        cache.set(cache_key, investments)
        return investments

    async def get_investment(self, investment_id: int) -> Investment:
        cache_key = f"{INVESTMENTS}{investment_id}"
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        investment = await self._repo.get(investment_id)
        if not investment:
            raise NotFoundException("Investment", investment_id)
        cache.set(cache_key, investment)
        return investment

    def preview_normalization(
        self, request: NormalizePreviewRequest
    ) -> Tuple[List[InvestorShare], Decimal, Decimal]:
        """
        Normalize a share list without storing anything.

        Returns the shares plus their percentage and amount totals so the
        share editor can show the rounding drift.
        """
        shares = normalize_shares(
            request.amount,
            [entry.to_input() for entry in request.investors],
            request.method or self.rounding,
        )
        total_pct = sum((s.share_percentage for s in shares), Decimal("0"))
        total_amount = sum((s.amount for s in shares), Decimal("0"))
        return shares, total_pct, total_amount

    async def get_ledger(
        self, investment_id: Optional[int] = None
    ) -> Tuple[List[LedgerRow], LedgerSummary]:
        """
        Reconcile contributions against shares, for one investment or all.

        Raises :class:`NotFoundException` for an unknown ``investment_id``.
        """
        cache_key = f"{LEDGER}{investment_id if investment_id is not None else 'all'}"
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        if investment_id is None:
            investments = await self._repo.list_all()
        else:
            investments = [await self.get_investment(investment_id)]

        contributions = await self._contribution_repo.list_for_investments(
            [inv.id for inv in investments]
        )
        rows = reconcile(investments, contributions)
        result = (rows, summarize(rows))
        cache.set(cache_key, result)
        return result

    # ── Commands ──

    async def create_investment(self, invest_in: InvestmentCreate) -> Investment:
        """
        Create an investment with a normalized share list.

        Raises :class:`NotFoundException` if a share references an unknown
        investor and :class:`BusinessRuleViolation` on constraint failures.
        """
        await self._check_investor_refs(invest_in.investors)

        investment = Investment(**invest_in.model_dump(exclude={"investors"}))
        self._apply_shares(investment, [e.to_input() for e in invest_in.investors])

        try:
            created = await self._repo.create(investment)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError creating investment: %s", exc)
            raise BusinessRuleViolation(
                "Investment data violates a database constraint. Check all fields."
            )
        cache.invalidate(INVESTMENTS, LEDGER)
        logger.info(
            "Created investment %s (%s, %s, %d shares)",
            created.id,
            created.title,
            created.amount,
            len(created.investors),
        )
        return created

    async def update_investment(
        self, investment_id: int, invest_in: InvestmentUpdate
    ) -> Investment:
        """
        Partial update.  Shares are re-normalized when ``investors`` or
        ``amount`` is part of the payload.
        """
        investment = await self._repo.get(investment_id)
        if not investment:
            raise NotFoundException("Investment", investment_id)

        changes = invest_in.model_dump(exclude_unset=True, exclude={"investors"})
        for key, value in changes.items():
            setattr(investment, key, value)

        if investment.end_date and investment.end_date < investment.start_date:
            raise BusinessRuleViolation("end_date must not be before start_date")

        if invest_in.investors is not None:
            await self._check_investor_refs(invest_in.investors)
            self._apply_shares(
                investment,
                [e.to_input() for e in invest_in.investors],
                clear_label="investor_name" not in changes,
            )
        elif "amount" in changes:
            self._apply_shares(investment, _stored_inputs(investment))

        try:
            updated = await self._repo.update(investment)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError updating investment %s: %s", investment_id, exc)
            raise BusinessRuleViolation(
                "Investment update violates a database constraint. Check all fields."
            )
        cache.invalidate(INVESTMENTS, LEDGER)
        logger.info("Updated investment %s", updated.id)
        return updated

    async def batch_update(self, updates: Sequence[InvestmentBatchItem]) -> List[Investment]:
        """
        Re-normalize several investments in one transaction.

        Every id is resolved before anything is written; one unknown id fails
        the whole batch with nothing changed.
        """
        ids = [item.id for item in updates]
        found: Dict[int, Investment] = {inv.id: inv for inv in await self._repo.get_many(ids)}
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundException("Investment", ", ".join(str(i) for i in missing))

        for item in updates:
            if item.investors is not None:
                await self._check_investor_refs(item.investors)

        changed = []
        for item in updates:
            investment = found[item.id]
            if item.amount is not None:
                investment.amount = item.amount
            if item.investors is not None:
                entries = [e.to_input() for e in item.investors]
            else:
                entries = _stored_inputs(investment)
            self._apply_shares(investment, entries, clear_label=item.investors is not None)
            changed.append(investment)

        try:
            updated = await self._repo.update_many(changed)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError in investment batch %s: %s", ids, exc)
            raise BusinessRuleViolation(
                "Batch update violates a database constraint; no investment was changed."
            )
        cache.invalidate(INVESTMENTS, LEDGER)
        logger.info("Batch-updated %d investments: %s", len(updated), ids)
        return updated

    async def delete_investment(self, investment_id: int) -> None:
        """Raises :class:`ConflictException` if contributions reference it."""
        try:
            deleted = await self._repo.delete(investment_id)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("Refused to delete investment %s: %s", investment_id, exc)
            raise ConflictException(
                f"Investment {investment_id} has recorded contributions and cannot be deleted"
            )
        if not deleted:
            raise NotFoundException("Investment", investment_id)
        cache.invalidate(INVESTMENTS, LEDGER)
        logger.info("Deleted investment %s", investment_id)

    async def bulk_delete(self, ids: Iterable[int]) -> int:
        """
        Delete several investments at once; all or nothing.

        Unknown ids are ignored.  If any of them has contributions the whole
        delete is rolled back.
        """
        unique_ids = sorted(set(ids))
        try:
            deleted = await self._repo.delete_many(unique_ids)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("Refused bulk delete of investments %s: %s", unique_ids, exc)
            raise ConflictException(
                "Some investments have recorded contributions; nothing was deleted"
            )
        cache.invalidate(INVESTMENTS, LEDGER)
        logger.info("Bulk-deleted %d investments", deleted)
        return deleted

    # ── Helpers ──

    def _apply_shares(
        self, investment: Investment, entries: List[ShareInput], clear_label: bool = False
    ) -> None:
        """
        Store normalized shares and the joined ``investor_name`` label.

        With ``clear_label`` an empty result also drops the old label, which
        would otherwise be read back as a legacy single investor.
        """
        shares = normalize_shares(investment.amount, entries, self.rounding)
        # Reassigned rather than mutated so the JSON column is flagged dirty.
        investment.investors = [s.to_dict() for s in shares]
        if shares:
            investment.investor_name = joined_names(shares)
        elif clear_label:
            investment.investor_name = None

    async def _check_investor_refs(self, entries: Sequence[InvestorShareIn]) -> None:
        ids = {e.investor_id for e in entries if e.investor_id is not None and e.name.strip()}
        if not ids:
            return
        known = {inv.id for inv in await self._investor_repo.get_many(list(ids))}
        missing = sorted(ids - known)
        if missing:
            raise NotFoundException("Investor", ", ".join(str(i) for i in missing))
