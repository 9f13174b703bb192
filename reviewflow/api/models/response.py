"""Response and version API models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from ...ai.prompts import ResponseTone
from .base import BaseResponse


class GenerateRequest(BaseModel):
    """Optional tone for a first generation."""

    tone: ResponseTone | None = Field(
        default=None,
        description="Tone override; omit to use the brand voice as configured",
    )


class RegenerateRequest(BaseModel):
    tone: ResponseTone | None = Field(
        default=None,
        description="Required: professional, friendly or empathetic",
    )


class EditResponseRequest(BaseModel):
    response_text: str = Field(..., min_length=1)


class RestoreVersionRequest(BaseModel):
    version_id: UUID


class ResponseDetail(BaseResponse):
    """The current response for a review."""

    response_id: UUID
    review_id: UUID
    response_text: str
    tone_used: str
    credits_used: Decimal
    generation_model: str | None = None
    is_edited: bool
    edited_at: datetime | None = None
    is_published: bool
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class VersionDetail(BaseResponse):
    version_id: UUID
    sequence: int
    response_text: str
    tone_used: str
    credits_used: Decimal
    is_edited: bool
    created_at: datetime


class ResponseWithVersions(BaseModel):
    response: ResponseDetail
    versions: list[VersionDetail] = Field(description="Newest first")


class GenerationResult(BaseModel):
    """Outcome of generate or regenerate, with the balance left afterwards."""

    response: ResponseDetail
    credits_used: Decimal
    credits_remaining: Decimal
