"""Repository for profile persistence."""

from __future__ import annotations

from sqlmodel import select

from ..models import Profile
from .base import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Persistence helpers for ``Profile`` entities."""

    model = Profile

    async def list_all(self) -> list[Profile]:
        """Return every profile ordered by creation time."""
        return await self._scalars(select(Profile).order_by(Profile.created_at, Profile.id))


__all__ = ["ProfileRepository"]
