"""Profile model mirroring users of the identity provider."""

from __future__ import annotations

import uuid
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field

from .common import TimestampMixin, enum_values


class ProfileRole(str, Enum):
    """Roles a profile may carry."""

    USER = "user"
    ADMIN = "admin"


class Profile(TimestampMixin, table=True):
    """Application-side record for an identity-provider user.

    The primary key is the identity provider's user id, so there is at most
    one profile per user.
    """

    __tablename__ = "profiles"

    id: uuid.UUID = Field(sa_column=sa.Column(sa.Uuid(), primary_key=True))
    email: str = Field(
        max_length=320,
        sa_column=sa.Column(sa.String(length=320), nullable=False),
    )
    full_name: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    avatar_url: str | None = Field(
        default=None,
        sa_column=sa.Column(sa.Text(), nullable=True),
    )
    role: ProfileRole = Field(
        default=ProfileRole.USER,
        sa_column=sa.Column(
            sa.Enum(
                ProfileRole,
                name="profile_role",
                native_enum=False,
                validate_strings=True,
                values_callable=enum_values,
            ),
            nullable=False,
            server_default=ProfileRole.USER.value,
        ),
    )


__all__ = ["Profile", "ProfileRole"]
