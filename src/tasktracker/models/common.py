"""Shared model mixins and utilities."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(sa.TypeDecorator):
    """``DateTime`` column that always stores and returns aware UTC values.

    SQLite drops offsets on round-trip, so values read back are re-tagged.
    """

    impl = sa.DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: sa.Dialect) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        return value

    def process_result_value(self, value: Any, dialect: sa.Dialect) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        return value


def enum_values(enum_type: type[Enum]) -> list[str]:
    """Persist enum values rather than member names."""
    return [member.value for member in enum_type]


class TimestampMixin(SQLModel, table=False):
    """Mixin that provides created/updated timestamp columns."""

    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=UTCDateTime,
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=UTCDateTime,
        sa_column_kwargs={
            "server_default": sa.func.now(),
            "onupdate": utcnow,
        },
    )


__all__ = ["TimestampMixin", "UTCDateTime", "as_utc", "enum_values", "utcnow"]
