"""Pydantic schemas for request and response payloads."""

from __future__ import annotations

from .envelope import ApiResponse, MessageResponse, PaginatedResponse, Pagination
from .system import ErrorDetail, ErrorResponse, HealthCheckResponse, RootResponse

__all__ = [
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthCheckResponse",
    "MessageResponse",
    "PaginatedResponse",
    "Pagination",
    "RootResponse",
]
