"""Status changes and the completion timestamp that follows them."""

from __future__ import annotations

from datetime import datetime

from ..errors import ValidationError
from ..models import Task, TaskStatus
from ..models.common import utcnow


def parse_status(raw: object) -> TaskStatus:
    """Return the ``TaskStatus`` named by ``raw`` or raise ``ValidationError``."""

    if isinstance(raw, TaskStatus):
        return raw
    if isinstance(raw, str):
        try:
            return TaskStatus(raw)
        except ValueError:
            pass
    raise ValidationError("Invalid status value", code="invalid_status")


def apply_status(task: Task, status: TaskStatus, *, now: datetime | None = None) -> Task:
    """Set ``task.status`` and keep ``completed_at`` consistent with it.

    Entering ``completed`` stamps the transition time; re-completing an already
    completed task keeps the original stamp. Leaving ``completed`` clears it.
    """

    if status is TaskStatus.COMPLETED:
        if task.status != TaskStatus.COMPLETED or task.completed_at is None:
            task.completed_at = now or utcnow()
    else:
        task.completed_at = None
    task.status = status
    return task


__all__ = ["apply_status", "parse_status"]
