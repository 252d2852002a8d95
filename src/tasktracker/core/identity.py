"""Client for the external identity provider.

Credentials, password hashing and session issuance live entirely in a
GoTrue-compatible identity service. This module exposes the narrow contract
the application consumes (``IdentityProvider``) together with the default HTTP
implementation. Access tokens are HS256 JWTs signed with the secret shared with
the identity service, so verification happens locally with ``python-jose``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, runtime_checkable

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from .config import Settings

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Base class for failures reported by, or while reaching, the identity provider."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class IdentityRejectedError(IdentityProviderError):
    """The provider understood the request and refused it (4xx)."""


class IdentityUnavailableError(IdentityProviderError):
    """The provider could not be reached or failed internally."""


class InvalidTokenError(IdentityProviderError):
    """An access token failed signature, audience or expiry checks."""


@dataclass(slots=True, frozen=True)
class IdentityUser:
    """User as described by the identity provider."""

    id: uuid.UUID
    email: str | None = None
    full_name: str | None = None


@dataclass(slots=True, frozen=True)
class IdentitySession:
    """Result of a sign-up, sign-in or refresh call.

    ``access_token`` is ``None`` when the provider requires email confirmation
    before issuing a session.
    """

    user: IdentityUser
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None


@runtime_checkable
class IdentityProvider(Protocol):
    """Operations the application needs from the identity provider."""

    async def sign_up(self, *, email: str, password: str, full_name: str) -> IdentitySession: ...

    async def sign_in_with_password(self, *, email: str, password: str) -> IdentitySession: ...

    async def sign_out(self, access_token: str) -> None: ...

    async def refresh_session(self, refresh_token: str) -> IdentitySession: ...

    async def verify_token(self, token: str) -> IdentityUser: ...

    async def aclose(self) -> None: ...


def _parse_user(payload: Mapping[str, Any]) -> IdentityUser:
    raw_id = payload.get("id") or payload.get("sub")
    try:
        user_id = uuid.UUID(str(raw_id))
    except (TypeError, ValueError) as exc:
        raise IdentityUnavailableError("Identity provider returned a malformed user.") from exc
    metadata = payload.get("user_metadata") or {}
    full_name = metadata.get("full_name") if isinstance(metadata, Mapping) else None
    return IdentityUser(id=user_id, email=payload.get("email"), full_name=full_name)


def _parse_session(payload: Mapping[str, Any]) -> IdentitySession:
    if "access_token" not in payload:
        # Confirmation pending: the provider answers with the bare user object.
        return IdentitySession(user=_parse_user(payload))
    user_payload = payload.get("user")
    if not isinstance(user_payload, Mapping):
        raise IdentityUnavailableError("Identity provider returned a session without a user.")
    expires_in = payload.get("expires_in")
    return IdentitySession(
        user=_parse_user(user_payload),
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token"),
        expires_in=int(expires_in) if expires_in is not None else None,
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, Mapping):
        for key in ("error_description", "msg", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase


class GoTrueIdentityProvider:
    """``IdentityProvider`` backed by a GoTrue-compatible REST API."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(
            base_url=f"{settings.identity_base_url}/auth/v1",
            timeout=settings.identity_timeout_seconds,
            headers={"apikey": settings.identity_api_key},
        )

    async def _post(
        self,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.post(path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Identity provider request to %s failed", path, exc_info=True)
            raise IdentityUnavailableError("Identity provider is unavailable.") from exc

        if response.status_code >= 500:
            logger.error(
                "Identity provider returned %s for %s",
                response.status_code,
                path,
                extra={"status_code": response.status_code},
            )
            raise IdentityUnavailableError(
                "Identity provider is unavailable.",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise IdentityRejectedError(_error_message(response), status_code=response.status_code)
        return response

    async def sign_up(self, *, email: str, password: str, full_name: str) -> IdentitySession:
        response = await self._post(
            "/signup",
            json={"email": email, "password": password, "data": {"full_name": full_name}},
        )
        return _parse_session(response.json())

    async def sign_in_with_password(self, *, email: str, password: str) -> IdentitySession:
        response = await self._post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return _parse_session(response.json())

    async def sign_out(self, access_token: str) -> None:
        await self._post("/logout", headers={"Authorization": f"Bearer {access_token}"})

    async def refresh_session(self, refresh_token: str) -> IdentitySession:
        response = await self._post(
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return _parse_session(response.json())

    async def verify_token(self, token: str) -> IdentityUser:
        return decode_access_token(token, self._settings)

    async def aclose(self) -> None:
        await self._client.aclose()


def decode_access_token(token: str, settings: Settings) -> IdentityUser:
    """Validate an access token locally and return the user it describes."""

    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except ExpiredSignatureError as exc:
        raise InvalidTokenError("Token has expired.") from exc
    except JWTError as exc:
        raise InvalidTokenError("Token could not be validated.") from exc

    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError("Token subject is not a user id.") from exc
    metadata = claims.get("user_metadata") or {}
    full_name = metadata.get("full_name") if isinstance(metadata, Mapping) else None
    return IdentityUser(id=user_id, email=claims.get("email"), full_name=full_name)


__all__ = [
    "GoTrueIdentityProvider",
    "IdentityProvider",
    "IdentityProviderError",
    "IdentityRejectedError",
    "IdentitySession",
    "IdentityUnavailableError",
    "IdentityUser",
    "InvalidTokenError",
    "decode_access_token",
]
