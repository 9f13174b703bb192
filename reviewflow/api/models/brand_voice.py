"""Brand voice API models."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ...services.review_service import PLATFORMS
from .base import BaseResponse


class BrandVoiceResponse(BaseResponse):
    tone: str
    formality: int
    key_phrases: list[str]
    style_notes: str | None = None
    sample_responses: list[str]


class BrandVoiceUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    tone: str | None = Field(default=None, max_length=50)
    formality: int | None = Field(default=None, ge=1, le=5)
    key_phrases: list[str] | None = Field(default=None, max_length=10)
    style_notes: str | None = Field(default=None, max_length=500)
    sample_responses: list[str] | None = Field(default=None, max_length=10)


class BrandVoiceTestRequest(BaseModel):
    """A sample review to draft a preview reply for."""

    review_text: str = Field(min_length=1, max_length=2000)
    platform: str = "Google"
    rating: int | None = Field(default=None, ge=1, le=5)

    @field_validator("platform")
    @classmethod
    def validate_platform(cls, v: str) -> str:
        if v not in PLATFORMS:
            raise ValueError(f"Platform must be one of: {', '.join(PLATFORMS)}")
        return v


class BrandVoiceTestResponse(BaseModel):
    """Preview reply. Previews never consume credits."""

    response_text: str
    model: str
    credits_used: Decimal = Field(default=Decimal("0"))
    detected_language: str
    brand_voice: BrandVoiceResponse
