"""Rejects identical review text submitted twice within a short window."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import Review, utc_now
from ..errors import DuplicateReviewError
from ..logging.config import get_logger

logger = get_logger(__name__)


class DuplicateGuard:
    """Lossy double-submission check for review intake.

    This only protects review creation. Generate and regenerate rely on the
    ledger's atomic balance check instead.
    """

    def __init__(
        self,
        window_seconds: int = 300,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.window = timedelta(seconds=window_seconds)
        self._clock = clock

    async def find_duplicate(
        self,
        session: AsyncSession,
        account_id: UUID,
        review_text: str,
    ) -> Review | None:
        """Return a matching review created inside the window, if any."""
        if self.window.total_seconds() <= 0:
            return None

        since = self._clock() - self.window
        result = await session.execute(
            select(Review)
            .where(
                Review.account_id == account_id,
                Review.review_text == review_text,
                Review.created_at >= since,
            )
            .order_by(Review.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def check(
        self,
        session: AsyncSession,
        account_id: UUID,
        review_text: str,
    ) -> None:
        """Raise DuplicateReviewError if the text was just submitted."""
        existing = await self.find_duplicate(session, account_id, review_text)
        if existing is not None:
            logger.info(
                "Duplicate review rejected",
                account_id=str(account_id),
                existing_review_id=str(existing.review_id),
            )
            raise DuplicateReviewError(
                "This review was already added a moment ago",
                details={"review_id": str(existing.review_id)},
            )
