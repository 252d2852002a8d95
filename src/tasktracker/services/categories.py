"""Service layer encapsulating category operations."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import DEFAULT_CATEGORY_COLOR, Category
from ..repositories import CategoryRepository, TaskRepository

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "Category name already exists"
NOT_FOUND_MESSAGE = "Category not found"

_UPDATABLE_FIELDS = ("name", "description", "color")


class CategoryService:
    """High-level business orchestration for ``Category`` entities."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = CategoryRepository(session)
        self._task_repository = TaskRepository(session)

    async def list_categories(self, owner_id: uuid.UUID) -> list[Category]:
        return await self._repository.list_for_owner(owner_id)

    async def get_category(self, owner_id: uuid.UUID, category_id: int) -> Category:
        category = await self._repository.get_for_owner(category_id, owner_id)
        if category is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return category

    async def create_category(
        self,
        owner_id: uuid.UUID,
        *,
        name: str,
        description: str | None = None,
        color: str | None = None,
    ) -> Category:
        """Create a category; names are unique per owner."""

        if await self._repository.get_by_name(name, owner_id) is not None:
            raise ConflictError(DUPLICATE_NAME_MESSAGE)
        category = Category(
            name=name,
            description=description,
            color=color or DEFAULT_CATEGORY_COLOR,
            owner_id=owner_id,
        )
        try:
            await self._repository.add(category)
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise ConflictError(DUPLICATE_NAME_MESSAGE) from exc
        await self._repository.refresh(category)
        logger.info("Created category %s", category.id, extra={"category_id": category.id})
        return category

    async def update_category(
        self,
        owner_id: uuid.UUID,
        category_id: int,
        changes: Mapping[str, Any],
    ) -> Category:
        """Apply a partial update to one of the owner's categories."""

        updates = {key: value for key, value in changes.items() if key in _UPDATABLE_FIELDS}
        if not updates:
            raise ValidationError("At least one field must be provided for update")
        for key in ("name", "color"):
            if key in updates and updates[key] is None:
                raise ValidationError(f"{key} cannot be null")
        category = await self.get_category(owner_id, category_id)

        new_name = updates.get("name")
        if new_name is not None and new_name != category.name:
            if await self._repository.get_by_name(new_name, owner_id) is not None:
                raise ConflictError(DUPLICATE_NAME_MESSAGE)

        for key, value in updates.items():
            setattr(category, key, value)
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise ConflictError(DUPLICATE_NAME_MESSAGE) from exc
        await self._repository.refresh(category)
        return category

    async def delete_category(self, owner_id: uuid.UUID, category_id: int) -> None:
        """Delete a category, detaching its tasks in the same transaction."""

        category = await self.get_category(owner_id, category_id)
        detached = await self._task_repository.clear_category(category_id)
        await self._repository.delete(category)
        await self._session.commit()
        logger.info(
            "Deleted category %s",
            category_id,
            extra={"category_id": category_id, "detached_tasks": detached},
        )


__all__ = ["CategoryService", "DUPLICATE_NAME_MESSAGE", "NOT_FOUND_MESSAGE"]
