"""Run the RQ worker that executes queued maintenance jobs."""

from __future__ import annotations

import logging

from rq import Worker

from .core.config import get_settings
from .core.jobs import close_job_connection, get_job_connection, get_job_queue
from .core.logging import configure_logging
from .jobs import JOB_REGISTRY

logger = logging.getLogger(__name__)


def run() -> None:
    settings = get_settings()
    configure_logging(settings)

    queue = get_job_queue()
    worker = Worker([queue], connection=get_job_connection(), name=settings.job_worker_name or None)
    logger.info(
        "Worker %s consuming %s (jobs: %s)",
        worker.name,
        queue.name,
        ", ".join(sorted(JOB_REGISTRY)),
        extra={"queue": queue.name},
    )
    try:
        worker.work()
    finally:
        close_job_connection()


if __name__ == "__main__":  # pragma: no cover
    run()
