"""Context variables copied onto every log record.

HTTP requests bind a correlation id and, once authenticated, the caller id.
Maintenance jobs bind the name of the job being run instead.
"""

from __future__ import annotations

from contextvars import ContextVar, Token

REQUEST_ID_HEADER = "X-Request-ID"

UNSET = "-"

_request_id: ContextVar[str] = ContextVar("request_id", default=UNSET)
_user_id: ContextVar[str] = ContextVar("user_id", default=UNSET)
_job_name: ContextVar[str] = ContextVar("job_name", default=UNSET)


def get_request_id() -> str:
    return _request_id.get()


def bind_request_id(request_id: str) -> Token[str]:
    return _request_id.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    _request_id.reset(token)


def get_user_id() -> str:
    return _user_id.get()


def bind_user_id(user_id: object) -> Token[str]:
    """Attach the authenticated caller so later log records can reference it."""

    return _user_id.set(str(user_id))


def get_job_name() -> str:
    return _job_name.get()


def bind_job_name(name: str) -> Token[str]:
    return _job_name.set(name)


def reset_job_name(token: Token[str]) -> None:
    _job_name.reset(token)


def log_context() -> dict[str, str]:
    """Snapshot of every bound identifier, keyed by log field name."""

    return {
        "request_id": _request_id.get(),
        "user_id": _user_id.get(),
        "job": _job_name.get(),
    }


def clear_context() -> None:
    """Forget identifiers inherited from whoever started the current thread or loop."""

    for var in (_request_id, _user_id, _job_name):
        var.set(UNSET)


__all__ = [
    "REQUEST_ID_HEADER",
    "UNSET",
    "bind_job_name",
    "bind_request_id",
    "bind_user_id",
    "clear_context",
    "get_job_name",
    "get_request_id",
    "get_user_id",
    "log_context",
    "reset_job_name",
    "reset_request_id",
]
