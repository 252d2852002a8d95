"""Alembic migration environment.

The database URL always comes from ``DATABASE_URL`` via the service settings;
``sqlalchemy.url`` in ``alembic.ini`` is ignored.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

import tasktracker.models  # noqa: F401  # populates SQLModel.metadata
from tasktracker.core.config import get_settings

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

DATABASE_URL = get_settings().database_url

_COMPARE_OPTIONS: dict[str, Any] = {
    "target_metadata": SQLModel.metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def _migrate(**configure_kwargs: Any) -> None:
    context.configure(**_COMPARE_OPTIONS, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _migrate_connection(connection: Connection) -> None:
    _migrate(connection=connection)


async def _migrate_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _migrate(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_migrate_online())
