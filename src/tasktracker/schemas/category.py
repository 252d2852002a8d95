"""Category-related Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreate(BaseModel):
    """Payload for creating a category."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={"example": {"name": "Work", "color": "#6366F1"}},
    )

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class CategoryUpdate(BaseModel):
    """Payload for partially updating a category."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)

    @model_validator(mode="after")
    def _ensure_payload_valid(self) -> "CategoryUpdate":
        provided = self.model_dump(exclude_unset=True)
        if not provided:
            raise ValueError("At least one field must be provided for update.")
        for name in ("name", "color"):
            if name in provided and provided[name] is None:
                raise ValueError(f"{name} cannot be null.")
        return self


class CategoryRead(BaseModel):
    """Public representation of a category."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    color: str
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


__all__ = ["COLOR_PATTERN", "CategoryCreate", "CategoryRead", "CategoryUpdate"]
