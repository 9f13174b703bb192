"""Review API models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .base import BaseResponse, PaginationMeta


class ReviewResponse(BaseResponse):
    """A stored review."""

    review_id: UUID
    platform: str
    review_text: str
    rating: int | None = None
    reviewer_name: str | None = None
    review_date: datetime | None = None
    language: str
    sentiment: str | None = None
    created_at: datetime


class SentimentInfo(BaseModel):
    """How the review's sentiment was determined."""

    analyzed: bool = Field(description="Whether a sentiment was stored")
    authoritative: bool = Field(
        default=False,
        description="False when the keyword fallback produced the result",
    )
    charged: bool = Field(default=False, description="Whether sentiment quota was consumed")
    confidence: float | None = None


class CreateReviewResponse(BaseModel):
    review: ReviewResponse
    sentiment: SentimentInfo


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    pagination: PaginationMeta
