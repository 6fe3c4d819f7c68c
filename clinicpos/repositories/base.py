"""
Generic async repository (data access layer).

Concrete repositories inherit from ``BaseRepository[T]`` and add
entity-specific queries.

- Every call goes through ``db_circuit_breaker`` so a dead database fails
  fast instead of piling up waiting requests.
- ``IntegrityError`` is NOT caught here; each service maps it to its own
  domain error (duplicate bill number, investment with payments, …).
- ``OperationalError`` rolls the session back and is re-raised.
- Multi-row writes (``update_many``, ``delete_many``) commit once, so they
  either all apply or none do.
"""

import logging
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlmodel import SQLModel

from clinicpos.core.resilience import db_circuit_breaker

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic CRUD repository for SQLModel entities.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository manages.
    db : AsyncSession
        The request's session.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def _execute_with_circuit_breaker(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        return await db_circuit_breaker.call(func, *args, **kwargs)

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except OperationalError:
            await self.db.rollback()
            logger.error("OperationalError during %s for %s", action, self.model.__name__)
            raise

    async def get(self, id: Any) -> Optional[ModelType]:
        """Fetch a single entity by primary key, or ``None``."""

        async def _get() -> Optional[ModelType]:
            return await self.db.get(self.model, id)

        return await self._execute_with_circuit_breaker(_get)

    async def get_many(self, ids: Sequence[Any]) -> List[ModelType]:
        """Fetch the entities whose primary keys are in ``ids`` (missing ones skipped)."""

        async def _get_many() -> List[ModelType]:
            if not ids:
                return []
            stmt = select(self.model).where(self.model.id.in_(list(ids)))  # type: ignore[attr-defined]
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._execute_with_circuit_breaker(_get_many)

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ModelType]:
        """Paginated list ordered by primary key, so pages are stable."""

        async def _get_all() -> List[ModelType]:
            pk_columns = self.model.__table__.primary_key.columns  # type: ignore[attr-defined]
            stmt = select(self.model).order_by(*pk_columns).offset(skip).limit(limit)
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._execute_with_circuit_breaker(_get_all)

    async def count(self) -> int:
        async def _count() -> int:
            stmt = select(func.count()).select_from(self.model)
            result = await self.db.execute(stmt)
            return result.scalar_one()

        return await self._execute_with_circuit_breaker(_count)

    async def create(self, obj_in: ModelType) -> ModelType:
        """Insert a new entity and return the refreshed instance."""

        async def _create() -> ModelType:
            self.db.add(obj_in)
            await self._commit("create")
            await self.db.refresh(obj_in)
            return obj_in

        return await self._execute_with_circuit_breaker(_create)

    async def create_many(self, objs: Sequence[ModelType]) -> List[ModelType]:
        """Insert several entities in one transaction."""

        async def _create_many() -> List[ModelType]:
            self.db.add_all(list(objs))
            await self._commit("create_many")
            for obj in objs:
                await self.db.refresh(obj)
            return list(objs)

        return await self._execute_with_circuit_breaker(_create_many)

    async def update(self, entity: ModelType) -> ModelType:
        """Persist changes the caller already made to ``entity``."""

        async def _update() -> ModelType:
            merged = await self.db.merge(entity)
            await self._commit("update")
            await self.db.refresh(merged)
            return merged

        return await self._execute_with_circuit_breaker(_update)

    async def update_many(self, entities: Sequence[ModelType]) -> List[ModelType]:
        """Persist several modified entities in a single commit."""

        async def _update_many() -> List[ModelType]:
            merged = [await self.db.merge(e) for e in entities]
            await self._commit("update_many")
            for m in merged:
                await self.db.refresh(m)
            return merged

        return await self._execute_with_circuit_breaker(_update_many)

    async def delete(self, id: Any) -> bool:
        """Delete by primary key.  Returns ``False`` if nothing was there."""

        async def _delete() -> bool:
            entity = await self.db.get(self.model, id)
            if entity is None:
                return False
            await self.db.delete(entity)
            await self._commit("delete")
            return True

        return await self._execute_with_circuit_breaker(_delete)

    async def delete_many(self, ids: Sequence[Any]) -> int:
        """Delete every entity in ``ids`` in one statement; returns rows removed."""

        async def _delete_many() -> int:
            stmt = delete(self.model).where(self.model.id.in_(list(ids)))  # type: ignore[attr-defined]
            result = await self.db.execute(stmt)
            await self._commit("delete_many")
            return result.rowcount or 0

        return await self._execute_with_circuit_breaker(_delete_many)
