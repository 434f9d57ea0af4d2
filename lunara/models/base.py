"""Shared Pydantic base models and the response envelope."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LunaraBase(BaseModel):
    """Base model with shared config for all Lunara schemas.

    Unknown fields are ignored, so client-supplied ``user_id`` / ``id`` /
    timestamps never reach the store through a request body.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        use_enum_values=True,
    )


class RecordMixin(BaseModel):
    """Fields stamped by the server on every stored record."""

    id: str
    user_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------- Response envelope ----------


class ApiResponse(BaseModel):
    """``{success, message?, data, error?, statusCode?, timestamp}``"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str | None = None
    data: Any = None
    error: str | None = None
    status_code: int | None = Field(default=None, alias="statusCode")
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        # data is always present, even when null
        return {k: v for k, v in payload.items() if v is not None or k == "data"}


def success_response(data: Any = None, message: str = "Success") -> dict[str, Any]:
    return ApiResponse(success=True, message=message, data=data).to_payload()


def error_payload(message: str, status_code: int = 500) -> dict[str, Any]:
    return ApiResponse(
        success=False, error=message, status_code=status_code
    ).to_payload()


class UpdateModel(LunaraBase):
    """Partial update body.

    ``changes()`` returns only the fields the client sent, minus explicit
    nulls for fields the record cannot go without.
    """

    non_nullable: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict[str, Any]:
        return {
            k: v
            for k, v in self.model_dump(exclude_unset=True).items()
            if v is not None or k not in self.non_nullable
        }
