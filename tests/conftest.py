from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import itertools
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from tasktracker import models  # noqa: F401  # register tables on the metadata
from tasktracker.core.config import get_settings
from tasktracker.core.identity import (
    IdentityRejectedError,
    IdentitySession,
    IdentityUser,
    InvalidTokenError,
)
from tasktracker.deps import get_db_session, get_identity_provider
from tasktracker.main import create_app

get_settings.cache_clear()


class FakeIdentityProvider:
    """In-memory stand-in for the GoTrue service."""

    def __init__(self) -> None:
        self.require_confirmation = False
        self._accounts: dict[str, tuple[str, IdentityUser]] = {}
        self._access_tokens: dict[str, IdentityUser] = {}
        self._refresh_tokens: dict[str, IdentityUser] = {}
        self._counter = itertools.count(1)
        self.signed_out: list[str] = []

    def _issue(self, user: IdentityUser) -> IdentitySession:
        serial = next(self._counter)
        access_token = f"access-{serial}"
        refresh_token = f"refresh-{serial}"
        self._access_tokens[access_token] = user
        self._refresh_tokens[refresh_token] = user
        return IdentitySession(
            user=user,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=3600,
        )

    def create_user(
        self,
        email: str,
        *,
        password: str = "secret-password",
        full_name: str | None = None,
    ) -> IdentitySession:
        user = IdentityUser(id=uuid.uuid4(), email=email, full_name=full_name)
        self._accounts[email] = (password, user)
        return self._issue(user)

    async def sign_up(self, *, email: str, password: str, full_name: str) -> IdentitySession:
        if email in self._accounts:
            raise IdentityRejectedError("User already registered", status_code=422)
        user = IdentityUser(id=uuid.uuid4(), email=email, full_name=full_name)
        self._accounts[email] = (password, user)
        if self.require_confirmation:
            return IdentitySession(user=user)
        return self._issue(user)

    async def sign_in_with_password(self, *, email: str, password: str) -> IdentitySession:
        account = self._accounts.get(email)
        if account is None or account[0] != password:
            raise IdentityRejectedError("Invalid login credentials", status_code=400)
        return self._issue(account[1])

    async def sign_out(self, access_token: str) -> None:
        self._access_tokens.pop(access_token, None)
        self.signed_out.append(access_token)

    async def refresh_session(self, refresh_token: str) -> IdentitySession:
        user = self._refresh_tokens.pop(refresh_token, None)
        if user is None:
            raise IdentityRejectedError("Invalid Refresh Token", status_code=400)
        return self._issue(user)

    async def verify_token(self, token: str) -> IdentityUser:
        user = self._access_tokens.get(token)
        if user is None:
            raise InvalidTokenError("Token could not be validated.")
        return user

    async def aclose(self) -> None:
        return None


@dataclass(slots=True)
class AuthenticatedUser:
    user: IdentityUser
    access_token: str

    @property
    def id(self) -> uuid.UUID:
        return self.user.id

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine: AsyncEngine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


@pytest_asyncio.fixture
async def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest_asyncio.fixture
async def app(session: AsyncSession, identity_provider: FakeIdentityProvider) -> AsyncIterator[FastAPI]:
    application = create_app(get_settings())

    async def _override_db_session() -> AsyncIterator[AsyncSession]:
        yield session

    application.dependency_overrides[get_db_session] = _override_db_session
    application.dependency_overrides[get_identity_provider] = lambda: identity_provider
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_user(identity_provider: FakeIdentityProvider) -> Callable[..., AuthenticatedUser]:
    def _make_user(email: str | None = None, *, full_name: str | None = None) -> AuthenticatedUser:
        address = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        issued = identity_provider.create_user(address, full_name=full_name)
        assert issued.access_token is not None
        return AuthenticatedUser(user=issued.user, access_token=issued.access_token)

    return _make_user
