"""Review intake: validation, duplicate guard and sentiment."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

import pydantic
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select

from ..db.connection import DatabaseConnection
from ..db.models import Account, Review, generate_uuid, utc_now
from ..errors import NotFoundError, ValidationError
from ..logging.config import get_logger
from .billing_cycle import to_naive_utc
from .duplicate_guard import DuplicateGuard
from .language import detect_language
from .sentiment import SentimentOutcome, SentimentService

logger = get_logger(__name__)

PLATFORMS = (
    "Google",
    "Amazon",
    "Yelp",
    "TripAdvisor",
    "Facebook",
    "Trustpilot",
    "G2",
    "Capterra",
    "App Store",
    "Play Store",
    "Other",
)

REVIEW_TEXT_MAX = 2000
REVIEWER_NAME_MAX = 100


class ReviewCreate(BaseModel):
    """Validated input for a new review."""

    platform: str = Field(..., description="Platform the review was posted on")
    review_text: str = Field(..., min_length=1, max_length=REVIEW_TEXT_MAX)
    rating: int | None = Field(default=None, ge=1, le=5)
    reviewer_name: str | None = Field(default=None, max_length=REVIEWER_NAME_MAX)
    review_date: datetime | None = None
    language: str | None = Field(default=None, max_length=50)

    @field_validator("platform")
    @classmethod
    def validate_platform(cls, v: str) -> str:
        if v not in PLATFORMS:
            raise ValueError(f"Platform must be one of: {', '.join(PLATFORMS)}")
        return v

    @field_validator("review_text")
    @classmethod
    def validate_review_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Review text is required")
        return v

    @field_validator("reviewer_name", "language")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


@dataclass
class CreatedReview:
    review: Review
    sentiment: SentimentOutcome


class ReviewService:
    """Creates, reads and deletes reviews for an account."""

    def __init__(
        self,
        db: DatabaseConnection,
        guard: DuplicateGuard,
        sentiment: SentimentService,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.guard = guard
        self.sentiment = sentiment
        self._clock = clock

    async def create_review(
        self,
        account_id: UUID,
        data: ReviewCreate | dict[str, Any],
    ) -> CreatedReview:
        """Store a review and classify its sentiment when quota remains.

        Raises:
            ValidationError: The input is malformed.
            NotFoundError: The account does not exist.
            DuplicateReviewError: The same text was submitted moments ago.
        """
        if not isinstance(data, ReviewCreate):
            try:
                data = ReviewCreate.model_validate(data)
            except pydantic.ValidationError as e:
                raise ValidationError(
                    "Invalid review",
                    details={
                        "errors": e.errors(
                            include_url=False, include_context=False, include_input=False
                        )
                    },
                ) from e

        now = self._clock()
        async with self.db.session() as session:
            if await session.get(Account, account_id) is None:
                raise NotFoundError(f"Account {account_id} not found")

            await self.guard.check(session, account_id, data.review_text)

            review = Review(
                review_id=generate_uuid(),
                account_id=account_id,
                platform=data.platform,
                review_text=data.review_text,
                rating=data.rating,
                reviewer_name=data.reviewer_name,
                review_date=to_naive_utc(data.review_date) if data.review_date else None,
                language=data.language or detect_language(data.review_text).language,
                created_at=now,
                updated_at=now,
            )
            session.add(review)

        logger.info(
            "Review created",
            account_id=str(account_id),
            review_id=str(review.review_id),
            platform=review.platform,
        )

        outcome = await self.sentiment.analyze_review(
            account_id, review.review_id, review.review_text
        )
        if outcome.result is not None:
            review.sentiment = outcome.result.sentiment.value

        return CreatedReview(review=review, sentiment=outcome)

    async def get_review(self, account_id: UUID, review_id: UUID) -> Review:
        async with self.db.session() as session:
            result = await session.execute(
                select(Review).where(
                    Review.review_id == review_id,
                    Review.account_id == account_id,
                )
            )
            review = result.scalar_one_or_none()
        if review is None:
            raise NotFoundError("Review not found")
        return review

    async def list_reviews(
        self,
        account_id: UUID,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Review], int]:
        """Page through an account's reviews, newest first."""
        page = max(page, 1)
        limit = max(1, min(limit, 100))
        async with self.db.session() as session:
            total_result = await session.execute(
                select(func.count(Review.review_id)).where(Review.account_id == account_id)
            )
            total = total_result.scalar() or 0
            result = await session.execute(
                select(Review)
                .where(Review.account_id == account_id)
                .order_by(Review.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            reviews = list(result.scalars().all())
        return reviews, total

    async def delete_review(self, account_id: UUID, review_id: UUID) -> None:
        """Delete a review with its response and versions.

        Usage records keep their review reference; the ledger is unchanged.
        """
        async with self.db.session() as session:
            result = await session.execute(
                select(Review).where(
                    Review.review_id == review_id,
                    Review.account_id == account_id,
                )
            )
            review = result.scalar_one_or_none()
            if review is None:
                raise NotFoundError("Review not found")
            await session.delete(review)

        logger.info(
            "Review deleted",
            account_id=str(account_id),
            review_id=str(review_id),
        )
