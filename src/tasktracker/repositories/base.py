"""Common plumbing for repositories over an ``AsyncSession``.

Repositories flush but never commit; the calling service owns the transaction.
"""

from __future__ import annotations

from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy.sql import Select
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    model: ClassVar[type[SQLModel]]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def _scalars(self, statement: Select[Any]) -> list[ModelType]:
        result = await self._session.execute(statement)
        return list(result.scalars().all())

    async def get(self, entity_id: Any) -> ModelType | None:
        """Look up a row by primary key, using the identity map when possible."""
        return await self._session.get(self.model, entity_id)  # type: ignore[return-value]

    async def add(self, instance: ModelType) -> ModelType:
        """Stage ``instance`` and flush so generated keys are populated."""
        self._session.add(instance)
        await self._session.flush()
        return instance

    async def delete(self, instance: ModelType) -> None:
        await self._session.delete(instance)
        await self._session.flush()

    async def refresh(self, instance: ModelType) -> ModelType:
        await self._session.refresh(instance)
        return instance


__all__ = ["BaseRepository", "ModelType"]
