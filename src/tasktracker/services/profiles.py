"""Lazy profile get-or-create and profile updates."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.identity import IdentityUser
from ..errors import UpstreamError, ValidationError
from ..models import Profile
from ..repositories import ProfileRepository

logger = logging.getLogger(__name__)

DEFAULT_FULL_NAME = "User"


class ProfileService:
    """Business logic for ``Profile`` records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = ProfileRepository(session)

    async def get_or_create(self, user: IdentityUser, *, full_name: str | None = None) -> Profile:
        """Return the user's profile, creating it on first access.

        Two concurrent first requests race on the primary key; the loser rolls
        back and reads the winner's row.
        """

        existing = await self._repository.get(user.id)
        if existing is not None:
            return existing

        profile = Profile(
            id=user.id,
            email=user.email or "",
            full_name=full_name or user.full_name or DEFAULT_FULL_NAME,
        )
        try:
            await self._repository.add(profile)
            await self._session.commit()
        except IntegrityError:
            logger.info("Detected concurrent profile creation for user %s; re-reading.", user.id)
            await self._session.rollback()
            existing = await self._repository.get(user.id)
            if existing is None:
                logger.error("Failed to locate profile during retry for user %s", user.id)
                raise UpstreamError("Failed to create profile")
            return existing
        await self._repository.refresh(profile)
        logger.info("Created profile for user %s", user.id)
        return profile

    async def update_profile(
        self,
        user: IdentityUser,
        *,
        full_name: str | None = None,
        avatar_url: str | None = None,
        clear_avatar: bool = False,
    ) -> Profile:
        """Apply the owner's changes to their profile."""

        if full_name is None and avatar_url is None and not clear_avatar:
            raise ValidationError("At least one field must be provided for update")
        profile = await self.get_or_create(user)
        if full_name is not None:
            profile.full_name = full_name
        if avatar_url is not None or clear_avatar:
            profile.avatar_url = avatar_url
        await self._session.commit()
        await self._repository.refresh(profile)
        return profile


__all__ = ["DEFAULT_FULL_NAME", "ProfileService"]
