"""
Investor service: business logic for the investor registry.

Names are unique case-insensitively.  The pre-check ``get_by_name()`` gives a
friendly 409; there is no unique index on the column, so two concurrent
requests with the same name can still both succeed (accepted, the registry is
maintained by a handful of staff).

Removing an investor keeps their contributions: the database sets
``investor_id`` to NULL and the ``investor_name`` label stays, so the ledger
falls back to name matching for those rows.

Caching:
    Reads are cached under ``investors:``.  Writes invalidate ``investors:``
    and, for updates and deletes, ``ledger:`` and ``contributions:`` since both
    surface investor identity.
"""

import logging
from typing import List

from clinicpos.core.cache import CONTRIBUTIONS, INVESTORS, LEDGER, cache
from clinicpos.core.exceptions import ConflictException, NotFoundException
from clinicpos.models.investor import Investor
from clinicpos.repositories.investor_repo import InvestorRepository
from clinicpos.schemas.investor import InvestorCreate, InvestorUpdate

logger = logging.getLogger(__name__)


class InvestorService:
    """Encapsulates CRUD + business rules for :class:`Investor`."""

    def __init__(self, investor_repo: InvestorRepository):
        self._repo = investor_repo

    # ── Queries ──

    async def get_all_investors(self) -> List[Investor]:
        """All investors ordered by name (cache-backed)."""
        cache_key = f"{INVESTORS}list"
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        investors = await self._repo.list_by_name()
        cache.set(cache_key, investors)
        return investors

    async def get_investor(self, investor_id: int) -> Investor:
        cache_key = f"{INVESTORS}{investor_id}"
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        investor = await self._repo.get(investor_id)
        if not investor:
            raise NotFoundException("Investor", investor_id)
        cache.set(cache_key, investor)
        return investor

    # ── Commands ──

    async def create_investor(self, investor_in: InvestorCreate) -> Investor:
        """
        Register a new investor.

        Raises :class:`ConflictException` if the name is already taken.
        """
        await self._ensure_name_free(investor_in.name)

        investor = Investor(**investor_in.model_dump())
        created = await self._repo.create(investor)
        cache.invalidate(INVESTORS)
        logger.info("Created investor %s (%s)", created.id, created.name)
        return created

    async def update_investor(self, investor_id: int, investor_in: InvestorUpdate) -> Investor:
        """
        Partial update.  Renaming does not rewrite the ``investor_name`` label
        of historical contributions or share lists.
        """
        investor = await self._repo.get(investor_id)
        if not investor:
            raise NotFoundException("Investor", investor_id)

        changes = investor_in.model_dump(exclude_unset=True)
        new_name = changes.get("name")
        if new_name and new_name.lower() != investor.name.lower():
            await self._ensure_name_free(new_name)

        for key, value in changes.items():
            setattr(investor, key, value)

        updated = await self._repo.update(investor)
        cache.invalidate(INVESTORS, LEDGER, CONTRIBUTIONS)
        logger.info("Updated investor %s", updated.id)
        return updated

    async def delete_investor(self, investor_id: int) -> None:
        deleted = await self._repo.delete(investor_id)
        if not deleted:
            raise NotFoundException("Investor", investor_id)
        cache.invalidate(INVESTORS, LEDGER, CONTRIBUTIONS)
        logger.info("Deleted investor %s", investor_id)

    async def _ensure_name_free(self, name: str) -> None:
        existing = await self._repo.get_by_name(name)
        if existing:
            logger.warning("Rejected duplicate investor name '%s'", name)
            raise ConflictException(f"An investor named '{name}' already exists")
