"""Reusable FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from .core.config import Settings, get_settings
from .core.context import bind_user_id
from .core.identity import IdentityProvider, IdentityUser, InvalidTokenError
from .db.session import get_session
from .errors import AuthenticationError

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields a database session."""

    async for session in get_session():
        yield session


def get_app_settings(request: Request) -> Settings:
    """Return the settings the application was created with."""

    return getattr(request.app.state, "settings", None) or get_settings()


def get_identity_provider(request: Request) -> IdentityProvider:
    """Return the identity provider attached to the application."""

    return request.app.state.identity_provider


async def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required", code="token_missing")
    return credentials.credentials


async def get_current_identity(
    token: str = Depends(get_access_token),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> IdentityUser:
    """Verify the bearer token and bind the caller id to the logging context."""

    try:
        user = await provider.verify_token(token)
    except InvalidTokenError as exc:
        raise AuthenticationError("Invalid or expired token", code="token_invalid") from exc
    bind_user_id(user.id)
    return user


SettingsDependency = Annotated[Settings, Depends(get_app_settings)]
DatabaseSessionDependency = Annotated[AsyncSession, Depends(get_db_session)]
IdentityProviderDependency = Annotated[IdentityProvider, Depends(get_identity_provider)]
AccessTokenDependency = Annotated[str, Depends(get_access_token)]
CurrentIdentityDependency = Annotated[IdentityUser, Depends(get_current_identity)]


__all__ = [
    "AccessTokenDependency",
    "CurrentIdentityDependency",
    "DatabaseSessionDependency",
    "IdentityProviderDependency",
    "SettingsDependency",
    "get_access_token",
    "get_app_settings",
    "get_current_identity",
    "get_db_session",
    "get_identity_provider",
]
