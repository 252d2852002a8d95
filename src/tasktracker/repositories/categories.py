"""Repository for category persistence."""

from __future__ import annotations

import uuid

from sqlmodel import select

from ..access import category_scope
from ..models import Category
from .base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    """Persistence helpers for ``Category`` entities."""

    model = Category

    async def list_for_owner(self, owner_id: uuid.UUID) -> list[Category]:
        """Return the owner's categories, newest first."""
        return await self._scalars(
            select(Category)
            .where(category_scope(owner_id))
            .order_by(Category.created_at.desc(), Category.id.asc())
        )

    async def get_for_owner(self, category_id: int, owner_id: uuid.UUID) -> Category | None:
        """Retrieve a category by ID ensuring it belongs to the provided owner."""
        result = await self.session.execute(
            select(Category).where(Category.id == category_id, category_scope(owner_id))
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str, owner_id: uuid.UUID) -> Category | None:
        result = await self.session.execute(
            select(Category).where(Category.name == name, category_scope(owner_id))
        )
        return result.scalar_one_or_none()


__all__ = ["CategoryRepository"]
