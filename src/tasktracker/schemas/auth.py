"""Schemas describing authentication and profile payloads."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from ..core.identity import IdentitySession, IdentityUser
from ..models import ProfileRole


class RegisterRequest(BaseModel):
    """Incoming payload for registering a new user."""

    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=2, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    """Request payload for refreshing a session; emptiness is reported by the service."""

    refresh_token: str | None = None


class AuthUser(BaseModel):
    id: uuid.UUID
    email: str | None = None
    full_name: str | None = None


class AuthPayload(BaseModel):
    """User summary plus the tokens issued by the identity provider."""

    user: AuthUser
    access_token: str | None = None
    refresh_token: str | None = None

    @classmethod
    def from_session(cls, session: IdentitySession, *, full_name: str | None = None) -> "AuthPayload":
        user: IdentityUser = session.user
        return cls(
            user=AuthUser(id=user.id, email=user.email, full_name=user.full_name or full_name),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
        )


class ProfileRead(BaseModel):
    """Public representation of a profile."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    full_name: str
    avatar_url: str | None = None
    role: ProfileRole
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, min_length=2, max_length=100)
    avatar_url: str | None = Field(default=None, max_length=2048)

    @model_validator(mode="after")
    def _ensure_payload_not_empty(self) -> "ProfileUpdate":
        if not self.model_dump(exclude_unset=True):
            raise ValueError("At least one field must be provided for update.")
        if "full_name" in self.model_fields_set and self.full_name is None:
            raise ValueError("full_name cannot be null.")
        return self


__all__ = [
    "AuthPayload",
    "AuthUser",
    "LoginRequest",
    "ProfileRead",
    "ProfileUpdate",
    "RefreshRequest",
    "RegisterRequest",
]
