"""Success envelopes wrapping every API payload."""

from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, model_serializer

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """``{success, data, message}`` wrapper used by all successful responses."""

    success: bool = True
    data: DataT | None = None
    message: str | None = None

    @model_serializer(mode="wrap")
    def _omit_empty_message(self, handler: SerializerFunctionWrapHandler):
        payload = handler(self)
        if isinstance(payload, dict) and payload.get("message") is None:
            payload.pop("message", None)
        return payload


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class Pagination(BaseModel):
    """Page metadata for list endpoints."""

    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total: int = Field(ge=0)
    pages: int = Field(ge=0)

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


class PaginatedResponse(ApiResponse[list[DataT]], Generic[DataT]):
    pagination: Pagination


__all__ = ["ApiResponse", "MessageResponse", "PaginatedResponse", "Pagination"]
