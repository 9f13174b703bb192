"""Shared schema pieces: ORM-backed response base, error envelope, paging."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseResponse(BaseModel):
    """Response models are built straight from ORM rows."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


class ErrorBody(BaseModel):
    code: str | int = Field(description="Stable error code, e.g. INSUFFICIENT_CREDITS")
    message: str
    details: Any = Field(
        default=None,
        description="Balance and next reset for credit errors, field errors for validation",
    )
    correlation_id: str | None = None


class ErrorResponse(BaseModel):
    """Envelope for every non-2xx response."""

    error: ErrorBody


class PaginationMeta(BaseModel):
    page: int = Field(ge=1, description="Current page number (1-indexed)")
    limit: int = Field(ge=1, le=100, description="Items per page")
    total: int = Field(ge=0, description="Total number of items")
    has_more: bool = Field(description="Whether more pages exist")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> PaginationMeta:
        return cls(page=page, limit=limit, total=total, has_more=page * limit < total)


# OpenAPI documentation for the error statuses routes commonly return.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status_code: {"model": ErrorResponse, "description": description}
    for status_code, description in (
        (402, "Not enough credits; details carry the balance and next reset"),
        (404, "Review, response or version not found"),
        (409, "Invalid state or a concurrent write; safe to retry"),
        (422, "Invalid input"),
        (503, "AI provider unavailable; see Retry-After"),
    )
}
