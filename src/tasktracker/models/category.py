"""Category model used to group a user's tasks."""

from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from .common import TimestampMixin

DEFAULT_CATEGORY_COLOR = "#6366f1"


class Category(TimestampMixin, table=True):
    """Persistent category owned by a single user."""

    __tablename__ = "categories"
    __table_args__ = (
        sa.UniqueConstraint("name", "owner_id", name="uq_categories_name_owner_id"),
        sa.Index("ix_categories_owner_id", "owner_id"),
    )

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(
        max_length=100,
        sa_column=sa.Column(sa.String(length=100), nullable=False),
    )
    description: str | None = Field(
        default=None,
        sa_column=sa.Column(sa.String(length=500), nullable=True),
    )
    color: str = Field(
        default=DEFAULT_CATEGORY_COLOR,
        sa_column=sa.Column(
            sa.String(length=7),
            nullable=False,
            server_default=DEFAULT_CATEGORY_COLOR,
        ),
    )
    owner_id: uuid.UUID = Field(sa_column=sa.Column(sa.Uuid(), nullable=False))


__all__ = ["Category", "DEFAULT_CATEGORY_COLOR"]
