from __future__ import annotations

import json
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from jose import jwt

from tasktracker.core.config import Settings
from tasktracker.core.identity import (
    GoTrueIdentityProvider,
    IdentityProvider,
    IdentityRejectedError,
    IdentityUnavailableError,
    InvalidTokenError,
    decode_access_token,
)

pytestmark = pytest.mark.asyncio

SECRET = "unit-test-secret"
USER_ID = uuid.UUID("8d7f6f0e-1c1b-4d3a-9a55-0f1e2d3c4b5a")


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        IDENTITY_URL="https://auth.example.com/",
        IDENTITY_API_KEY="anon-key",
        JWT_SECRET_KEY=SECRET,
    )


def _user_payload(full_name: str | None = "Ada Lovelace") -> dict:
    payload = {"id": str(USER_ID), "email": "ada@example.com"}
    if full_name is not None:
        payload["user_metadata"] = {"full_name": full_name}
    return payload


def _session_payload() -> dict:
    return {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "expires_in": 3600,
        "token_type": "bearer",
        "user": _user_payload(),
    }


def _provider(settings: Settings, handler) -> tuple[GoTrueIdentityProvider, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(
        transport=httpx.MockTransport(_record),
        base_url=f"{settings.identity_base_url}/auth/v1",
        headers={"apikey": settings.identity_api_key},
    )
    return GoTrueIdentityProvider(settings, client=client), requests


def _token(claims: dict, *, secret: str = SECRET) -> str:
    base = {
        "sub": str(USER_ID),
        "aud": "authenticated",
        "email": "ada@example.com",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        "user_metadata": {"full_name": "Ada Lovelace"},
    }
    base.update(claims)
    return jwt.encode(base, secret, algorithm="HS256")


async def test_provider_satisfies_protocol(settings: Settings) -> None:
    provider = GoTrueIdentityProvider(settings)
    try:
        assert isinstance(provider, IdentityProvider)
    finally:
        await provider.aclose()


async def test_sign_up_sends_full_name_and_parses_session(settings: Settings) -> None:
    provider, requests = _provider(settings, lambda request: httpx.Response(200, json=_session_payload()))

    session = await provider.sign_up(email="ada@example.com", password="secret1", full_name="Ada Lovelace")

    request = requests[0]
    assert request.method == "POST"
    assert request.url == "https://auth.example.com/auth/v1/signup"
    assert request.headers["apikey"] == "anon-key"
    assert json.loads(request.content) == {
        "email": "ada@example.com",
        "password": "secret1",
        "data": {"full_name": "Ada Lovelace"},
    }
    assert session.user.id == USER_ID
    assert session.user.full_name == "Ada Lovelace"
    assert session.access_token == "access-1"
    assert session.refresh_token == "refresh-1"
    assert session.expires_in == 3600


async def test_sign_up_pending_confirmation_has_no_tokens(settings: Settings) -> None:
    provider, _ = _provider(settings, lambda request: httpx.Response(200, json=_user_payload(None)))

    session = await provider.sign_up(email="ada@example.com", password="secret1", full_name="Ada")

    assert session.user.id == USER_ID
    assert session.user.full_name is None
    assert session.access_token is None
    assert session.refresh_token is None


async def test_sign_in_uses_password_grant(settings: Settings) -> None:
    provider, requests = _provider(settings, lambda request: httpx.Response(200, json=_session_payload()))

    await provider.sign_in_with_password(email="ada@example.com", password="secret1")

    assert requests[0].url.path == "/auth/v1/token"
    assert requests[0].url.params["grant_type"] == "password"


async def test_rejections_carry_the_provider_message(settings: Settings) -> None:
    provider, _ = _provider(
        settings,
        lambda request: httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
        ),
    )

    with pytest.raises(IdentityRejectedError) as excinfo:
        await provider.sign_in_with_password(email="ada@example.com", password="wrong")

    assert excinfo.value.message == "Invalid login credentials"
    assert excinfo.value.status_code == 400


async def test_rejection_without_json_falls_back_to_text(settings: Settings) -> None:
    provider, _ = _provider(settings, lambda request: httpx.Response(422, text="Signup disabled"))

    with pytest.raises(IdentityRejectedError) as excinfo:
        await provider.sign_up(email="ada@example.com", password="secret1", full_name="Ada")

    assert excinfo.value.message == "Signup disabled"


async def test_server_errors_mean_unavailable(settings: Settings) -> None:
    provider, _ = _provider(settings, lambda request: httpx.Response(503, json={"msg": "down"}))

    with pytest.raises(IdentityUnavailableError) as excinfo:
        await provider.refresh_session("refresh-1")

    assert excinfo.value.status_code == 503


async def test_transport_failures_mean_unavailable(settings: Settings) -> None:
    def _fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider, _ = _provider(settings, _fail)

    with pytest.raises(IdentityUnavailableError):
        await provider.sign_in_with_password(email="ada@example.com", password="secret1")


async def test_sign_out_forwards_the_bearer_token(settings: Settings) -> None:
    provider, requests = _provider(settings, lambda request: httpx.Response(204))

    await provider.sign_out("access-1")

    assert requests[0].url.path == "/auth/v1/logout"
    assert requests[0].headers["Authorization"] == "Bearer access-1"


async def test_refresh_uses_refresh_token_grant(settings: Settings) -> None:
    provider, requests = _provider(settings, lambda request: httpx.Response(200, json=_session_payload()))

    session = await provider.refresh_session("refresh-0")

    assert requests[0].url.params["grant_type"] == "refresh_token"
    assert json.loads(requests[0].content) == {"refresh_token": "refresh-0"}
    assert session.access_token == "access-1"


async def test_verify_token_decodes_claims(settings: Settings) -> None:
    provider, _ = _provider(settings, lambda request: httpx.Response(500))

    user = await provider.verify_token(_token({}))

    assert user.id == USER_ID
    assert user.email == "ada@example.com"
    assert user.full_name == "Ada Lovelace"


@pytest.mark.parametrize(
    ("token_factory", "message"),
    [
        (lambda: _token({"exp": datetime.now(timezone.utc) - timedelta(seconds=5)}), "Token has expired."),
        (lambda: _token({}, secret="another-secret"), "Token could not be validated."),
        (lambda: _token({"aud": "service_role"}), "Token could not be validated."),
        (lambda: _token({"sub": "not-a-uuid"}), "Token subject is not a user id."),
        (lambda: "garbage", "Token could not be validated."),
    ],
)
def test_invalid_tokens_are_rejected(settings: Settings, token_factory, message: str) -> None:
    with pytest.raises(InvalidTokenError) as excinfo:
        decode_access_token(token_factory(), settings)

    assert excinfo.value.message == message
