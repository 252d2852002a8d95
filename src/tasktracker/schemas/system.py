"""Common system-level response models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RootResponse(BaseModel):
    """Metadata payload returned by the root endpoint."""

    name: str = Field(description="Human-friendly service name")
    environment: str = Field(description="Deployment environment identifier")
    version: str = Field(description="Semantic version of the service")
    api_prefix: str = Field(description="Base path for API routes")


class HealthCheckResponse(BaseModel):
    """Payload returned by the health check endpoint."""

    status: str = Field(default="ok", description="Service health indicator")
    environment: str = Field(description="Deployment environment identifier")


class ErrorDetail(BaseModel):
    """A single field-level validation problem."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standardised error envelope returned by exception handlers."""

    success: bool = False
    error: str = Field(description="Human-readable error message")
    details: list[ErrorDetail] | None = Field(
        default=None,
        description="Field-level problems for validation failures.",
    )
    type: str | None = Field(
        default=None,
        description="Exception type, only exposed outside production for debugging.",
    )


__all__ = ["ErrorDetail", "ErrorResponse", "HealthCheckResponse", "RootResponse"]
