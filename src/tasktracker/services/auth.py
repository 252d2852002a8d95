"""Authentication workflows delegated to the identity provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.identity import (
    IdentityProvider,
    IdentityRejectedError,
    IdentitySession,
    IdentityUnavailableError,
)
from ..errors import AuthenticationError, UpstreamError, ValidationError
from .profiles import ProfileService

logger = logging.getLogger(__name__)

CONFIRMATION_PENDING_MESSAGE = (
    "Registration successful. Please check your email to confirm your account."
)


@dataclass(slots=True)
class RegistrationResult:
    session: IdentitySession
    full_name: str
    message: str | None = None


class AuthService:
    """Sign-up, sign-in, sign-out and refresh against the identity provider."""

    def __init__(self, provider: IdentityProvider, session: AsyncSession) -> None:
        self._provider = provider
        self._session = session

    async def register(self, *, email: str, password: str, full_name: str) -> RegistrationResult:
        """Create an identity and, best effort, its profile."""

        try:
            identity_session = await self._provider.sign_up(
                email=email,
                password=password,
                full_name=full_name,
            )
        except IdentityRejectedError as exc:
            logger.warning("Registration rejected by identity provider", extra={"reason": exc.message})
            raise ValidationError(exc.message, code="registration_failed") from exc
        except IdentityUnavailableError as exc:
            raise UpstreamError("Registration is temporarily unavailable") from exc

        user = identity_session.user
        display_name = user.full_name or full_name
        try:
            await ProfileService(self._session).get_or_create(user, full_name=display_name)
        except (SQLAlchemyError, UpstreamError):
            # Registration already succeeded upstream; the profile is created lazily later.
            logger.error("Profile creation failed for user %s", user.id, exc_info=True)
            await self._session.rollback()

        message = CONFIRMATION_PENDING_MESSAGE if identity_session.access_token is None else None
        return RegistrationResult(session=identity_session, full_name=display_name, message=message)

    async def login(self, *, email: str, password: str) -> IdentitySession:
        try:
            return await self._provider.sign_in_with_password(email=email, password=password)
        except IdentityRejectedError as exc:
            logger.warning("Login rejected by identity provider", extra={"reason": exc.message})
            raise AuthenticationError("Invalid credentials", code="invalid_credentials") from exc
        except IdentityUnavailableError as exc:
            raise UpstreamError("Login is temporarily unavailable") from exc

    async def logout(self, access_token: str) -> None:
        try:
            await self._provider.sign_out(access_token)
        except IdentityRejectedError as exc:
            raise ValidationError(exc.message, code="logout_failed") from exc
        except IdentityUnavailableError as exc:
            raise UpstreamError("Logout is temporarily unavailable") from exc

    async def refresh(self, refresh_token: str | None) -> IdentitySession:
        if not refresh_token:
            raise ValidationError("Refresh token required", code="refresh_token_required")
        try:
            return await self._provider.refresh_session(refresh_token)
        except IdentityRejectedError as exc:
            raise AuthenticationError("Invalid refresh token", code="invalid_refresh_token") from exc
        except IdentityUnavailableError as exc:
            raise UpstreamError("Token refresh is temporarily unavailable") from exc


__all__ = ["AuthService", "CONFIRMATION_PENDING_MESSAGE", "RegistrationResult"]
