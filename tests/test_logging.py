from __future__ import annotations

import io
import json
import logging

from tasktracker.core.config import Settings
from tasktracker.core.context import (
    bind_job_name,
    bind_request_id,
    bind_user_id,
    clear_context,
    reset_job_name,
    reset_request_id,
)
from tasktracker.core.logging import JsonLogFormatter, configure_logging


def _capture(logger_name: str, emit) -> dict:
    root_logger = logging.getLogger()
    handler = next(
        (h for h in root_logger.handlers if isinstance(h.formatter, JsonLogFormatter)),
        None,
    )
    assert handler is not None, "Expected JSON stream handler to be configured"

    buffer = io.StringIO()
    previous_stream = handler.setStream(buffer)
    try:
        emit(logging.getLogger(logger_name))
    finally:
        handler.flush()
        handler.setStream(previous_stream)

    log_lines = buffer.getvalue().strip().splitlines()
    assert log_lines, "Expected structured log line to be captured"
    return json.loads(log_lines[-1])


def test_configure_logging_outputs_json_with_request_context() -> None:
    settings = Settings(ENVIRONMENT="test", LOG_LEVEL="INFO")
    configure_logging(settings)

    token = bind_request_id("req-json-1")
    bind_user_id("3f0b7f5e-0000-4000-8000-000000000001")
    try:
        payload = _capture(
            "tasktracker.tests.logging",
            lambda logger: logger.info("structured log event", extra={"component": "unit-test"}),
        )
    finally:
        reset_request_id(token)
        clear_context()

    assert payload["message"] == "structured log event"
    assert payload["request_id"] == "req-json-1"
    assert payload["user_id"] == "3f0b7f5e-0000-4000-8000-000000000001"
    assert payload["environment"] == settings.environment
    assert payload["level"] == "INFO"
    assert payload["component"] == "unit-test"
    assert payload["service"] == settings.project_name
    assert payload["logger"] == "tasktracker.tests.logging"


def test_log_records_outside_requests_use_placeholders() -> None:
    configure_logging(Settings(ENVIRONMENT="test", LOG_LEVEL="INFO"))
    clear_context()

    payload = _capture("tasktracker.tests.jobs", lambda logger: logger.warning("job ran"))

    assert payload["request_id"] == "-"
    assert payload["user_id"] == "-"
    assert payload["job"] == "-"


def test_exceptions_and_unserialisable_extras_are_rendered() -> None:
    configure_logging(Settings(ENVIRONMENT="test", LOG_LEVEL="INFO"))

    def _emit(logger: logging.Logger) -> None:
        try:
            raise ValueError("kaboom")
        except ValueError:
            logger.exception("failure", extra={"payload": object()})

    payload = _capture("tasktracker.tests.errors", _emit)

    assert payload["level"] == "ERROR"
    assert "ValueError: kaboom" in payload["exception"]
    assert payload["payload"].startswith("<object object")


def test_job_name_is_attached_while_bound() -> None:
    configure_logging(Settings(ENVIRONMENT="test", LOG_LEVEL="INFO"))
    clear_context()

    token = bind_job_name("overdue_check")
    try:
        payload = _capture("tasktracker.jobs", lambda logger: logger.info("checked", extra={"job_id": "j-1"}))
    finally:
        reset_job_name(token)

    assert payload["job"] == "overdue_check"
    assert payload["job_id"] == "j-1"
    assert payload["request_id"] == "-"
