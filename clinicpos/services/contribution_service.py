"""
Contribution service: business logic for investor payments.

A contribution must point at an existing investment and, when given, an
existing investor.  When no ``investor_id`` is supplied the service links the
payment to the investment share with the same name if that share carries an
id, so later renames do not detach it from the ledger.

Caching:
    Reads are cached under ``contributions:``.  Writes invalidate
    ``contributions:`` and ``ledger:``.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from clinicpos.core.cache import CONTRIBUTIONS, LEDGER, cache
from clinicpos.core.exceptions import BusinessRuleViolation, NotFoundException
from clinicpos.ledger.reconcile import shares_for
from clinicpos.models.contribution import Contribution
from clinicpos.models.investment import Investment
from clinicpos.repositories.contribution_repo import ContributionRepository
from clinicpos.repositories.investment_repo import InvestmentRepository
from clinicpos.repositories.investor_repo import InvestorRepository
from clinicpos.schemas.contribution import ContributionCreate, ContributionUpdate

logger = logging.getLogger(__name__)


def linked_investor_id(investment: Investment, investor_name: str) -> Optional[int]:
    """The ``investor_id`` of the investment share named ``investor_name``, if any."""
    for share in shares_for(investment):
        if share.name == investor_name and share.investor_id is not None:
            return share.investor_id
    return None


class ContributionService:
    """Encapsulates CRUD + reference checks for :class:`Contribution`."""

    def __init__(
        self,
        contribution_repo: ContributionRepository,
        invest_repo: InvestmentRepository,
        investor_repo: InvestorRepository,
    ):
        self._repo = contribution_repo
        self._invest_repo = invest_repo
        self._investor_repo = investor_repo

    # ── Queries ──

    async def get_all_contributions(
        self, investment_id: Optional[int] = None, skip: int = 0, limit: int = 1000
    ) -> List[Contribution]:
        """Contributions newest first, optionally for one investment (cache-backed)."""
        cache_key = f"{CONTRIBUTIONS}list:{investment_id}:{skip}:{limit}"
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        contributions = await self._repo.list_filtered(
            investment_id=investment_id, skip=skip, limit=limit
        )
        cache.set(cache_key, contributions)
        return contributions

    async def get_contribution(self, contribution_id: int) -> Contribution:
        cache_key = f"{CONTRIBUTIONS}{contribution_id}"
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        contribution = await self._repo.get(contribution_id)
        if not contribution:
            raise NotFoundException("Contribution", contribution_id)
        cache.set(cache_key, contribution)
        return contribution

    # ── Commands ──

    async def create_contribution(self, contrib_in: ContributionCreate) -> Contribution:
        """
        Record a payment.

        Raises :class:`NotFoundException` for an unknown investment or investor.
        """
        investment = await self._get_investment(contrib_in.investment_id)
        await self._check_investor(contrib_in.investor_id)

        contribution = Contribution(**contrib_in.model_dump())
        if contribution.investor_id is None:
            contribution.investor_id = linked_investor_id(investment, contribution.investor_name)

        created = await self._save(self._repo.create, contribution, "creating")
        cache.invalidate(CONTRIBUTIONS, LEDGER)
        logger.info(
            "Recorded contribution %s: %s paid %s toward investment %s",
            created.id,
            created.investor_name,
            created.amount,
            created.investment_id,
        )
        return created

    async def create_many(self, contributions: List[Contribution]) -> List[Contribution]:
        """Insert already-validated contributions in one transaction (importer)."""
        if not contributions:
            return []
        created = await self._save(self._repo.create_many, contributions, "importing")
        cache.invalidate(CONTRIBUTIONS, LEDGER)
        logger.info("Imported %d contributions", len(created))
        return created

    async def update_contribution(
        self, contribution_id: int, contrib_in: ContributionUpdate
    ) -> Contribution:
        contribution = await self._repo.get(contribution_id)
        if not contribution:
            raise NotFoundException("Contribution", contribution_id)

        changes = contrib_in.model_dump(exclude_unset=True)
        if "investor_name" in changes and changes["investor_name"] is not None:
            changes["investor_name"] = changes["investor_name"].strip()
        investment = None
        if changes.get("investment_id") is not None:
            investment = await self._get_investment(changes["investment_id"])
        if changes.get("investor_id") is not None:
            await self._check_investor(changes["investor_id"])

        for key, value in changes.items():
            setattr(contribution, key, value)

        # A payment moved to another name or investment follows that share's link.
        if ("investor_name" in changes or "investment_id" in changes) and "investor_id" not in changes:
            if investment is None:
                investment = await self._get_investment(contribution.investment_id)
            contribution.investor_id = linked_investor_id(investment, contribution.investor_name)

        updated = await self._save(self._repo.update, contribution, "updating")
        cache.invalidate(CONTRIBUTIONS, LEDGER)
        logger.info("Updated contribution %s", updated.id)
        return updated

    async def delete_contribution(self, contribution_id: int) -> None:
        deleted = await self._repo.delete(contribution_id)
        if not deleted:
            raise NotFoundException("Contribution", contribution_id)
        cache.invalidate(CONTRIBUTIONS, LEDGER)
        logger.info("Deleted contribution %s", contribution_id)

    # ── Helpers ──

    async def _get_investment(self, investment_id: int) -> Investment:
        investment = await self._invest_repo.get(investment_id)
        if not investment:
            raise NotFoundException("Investment", investment_id)
        return investment

    async def _check_investor(self, investor_id: Optional[int]) -> None:
        if investor_id is None:
            return
        if not await self._investor_repo.get(investor_id):
            raise NotFoundException("Investor", investor_id)

    async def _save(self, write, payload, action: str):
        # Catches TOCTOU races: the investment or investor removed after the check.
        try:
            return await write(payload)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError %s contribution: %s", action, exc)
            raise BusinessRuleViolation(
                "Contribution could not be saved: a referenced investment or investor "
                "may have been removed, or a database constraint was violated."
            )
