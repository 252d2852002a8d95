"""Redis/RQ plumbing for the maintenance jobs.

The API process only needs this module when the scheduler dispatches to the
queue; the worker process (``tasktracker.worker``) consumes the same queue.
Jobs open their own database sessions through :func:`execute_in_job_session`,
which tests point at an in-memory database with :func:`set_job_session_factory`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from threading import RLock
from typing import TYPE_CHECKING, TypeVar
from uuid import uuid4

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue
from rq.job import Job

from .config import get_settings

if TYPE_CHECKING:  # pragma: no cover
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar("T")
SessionFactory = Callable[[], AbstractAsyncContextManager["AsyncSession"]]


class JobQueueUnavailableError(RuntimeError):
    """Redis could not be reached to enqueue or consume maintenance jobs."""


@dataclass
class _JobRuntime:
    connection: Redis | None = None
    queue: Queue | None = None
    session_factory: SessionFactory | None = None


_runtime = _JobRuntime()
_lock = RLock()


def set_job_connection(connection: Redis | None) -> None:
    """Use ``connection`` for the queue from now on (tests pass a FakeRedis)."""

    with _lock:
        _runtime.connection = connection
        _runtime.queue = None


def close_job_connection() -> None:
    with _lock:
        connection, _runtime.connection, _runtime.queue = _runtime.connection, None, None
    if connection is None:
        return
    try:
        connection.close()
    except RedisError:  # pragma: no cover
        logger.debug("Redis connection did not close cleanly", exc_info=True)


def set_job_session_factory(factory: SessionFactory | None) -> None:
    with _lock:
        _runtime.session_factory = factory


@asynccontextmanager
async def _database_session() -> AsyncIterator["AsyncSession"]:
    from ..db.session import async_session_maker

    async with async_session_maker() as session:
        yield session


async def execute_in_job_session(callback: Callable[["AsyncSession"], Awaitable[T]]) -> T:
    """Run ``callback`` with a session that is closed once it returns."""

    factory = _runtime.session_factory or _database_session
    async with factory() as session:
        return await callback(session)


def get_job_connection() -> Redis:
    """Return the shared Redis connection, connecting on first use."""

    with _lock:
        if _runtime.connection is None:
            url = get_settings().redis_url
            try:
                connection = Redis.from_url(url)
                connection.ping()
            except RedisError as exc:  # pragma: no cover
                logger.error("Job queue Redis at %s is unreachable", url, exc_info=True)
                raise JobQueueUnavailableError("Job queue is unavailable.") from exc
            _runtime.connection = connection
        return _runtime.connection


def get_job_queue() -> Queue:
    with _lock:
        if _runtime.queue is None:
            settings = get_settings()
            _runtime.queue = Queue(
                settings.job_queue_name,
                connection=get_job_connection(),
                default_timeout=settings.job_default_timeout or None,
            )
        return _runtime.queue


def enqueue_scheduled_job(name: str, *, job_id: str | None = None) -> Job:
    """Put one run of the registered job ``name`` on the maintenance queue.

    Failed runs are not retried; the job's next trigger runs it again.
    """

    from ..jobs import JOB_REGISTRY, run_scheduled_job

    if name not in JOB_REGISTRY:
        raise KeyError(f"Unknown scheduled job {name!r}")

    settings = get_settings()
    ttl = settings.job_result_ttl_seconds or None
    queue = get_job_queue()
    try:
        job = queue.enqueue(
            run_scheduled_job,
            name,
            job_id=job_id or f"scheduled-{name}-{uuid4().hex}",
            description=f"Scheduled maintenance job {name}",
            job_timeout=settings.job_default_timeout or None,
            result_ttl=ttl,
            failure_ttl=ttl,
        )
    except RedisError as exc:  # pragma: no cover
        logger.error("Could not enqueue scheduled job %s", name, exc_info=True)
        raise JobQueueUnavailableError("Unable to enqueue job; Redis is unavailable.") from exc
    logger.info("Enqueued scheduled job %s as %s", name, job.id, extra={"job_id": job.id})
    return job


__all__ = [
    "JobQueueUnavailableError",
    "close_job_connection",
    "enqueue_scheduled_job",
    "execute_in_job_session",
    "get_job_connection",
    "get_job_queue",
    "set_job_connection",
    "set_job_session_factory",
]
