"""Response Orchestrator: the review -> response -> version state machine.

A review is either without a response or has exactly one. Generate creates
it, Regenerate / ManualEdit / RestoreVersion change its text, Delete removes
it. Every change of ``Response.response_text`` first writes the pre-change
text into a new ResponseVersion, so versions form a trailing log of what the
text used to be.

Charging rules:

* The AI call happens outside any database transaction.
* Credits are deducted only after the provider returned text.
* If persisting the response fails after the deduction, the deducted amount
  is refunded before the error is surfaced.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..ai.prompts import BrandVoiceConfig, ResponseTone, ReviewContext
from ..ai.provider import AIProviderClient, GeneratedText
from ..config import AISettings, BillingSettings
from ..db.connection import DatabaseConnection
from ..db.models import (
    Response,
    ResponseVersion,
    Review,
    UsageAction,
    generate_uuid,
    utc_now,
)
from ..errors import (
    InvalidStateError,
    NotFoundError,
    PersistenceConflictError,
    ValidationError,
)
from ..logging.config import LogContext, get_logger
from .brand_voice import load_brand_voice_config
from .quota_store import LedgerEntry, QuotaStore

logger = get_logger(__name__)

SNAPSHOT_PREVIEW_CHARS = 100


@dataclass
class ResponseView:
    """A response with its version history, newest version first."""

    response: Response
    versions: list[ResponseVersion]


def parse_tone(value: ResponseTone | str | None) -> ResponseTone | None:
    """Coerce a tone value, rejecting unknown strings."""
    if value is None or isinstance(value, ResponseTone):
        return value
    try:
        return ResponseTone(value)
    except ValueError:
        raise ValidationError(
            f"Unknown tone: {value}",
            details={"allowed": [tone.value for tone in ResponseTone]},
        ) from None


@asynccontextmanager
async def _translate_conflicts() -> AsyncIterator[None]:
    """Turn database write failures into PersistenceConflictError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.warning(
            "Response update conflicted",
            error_type=type(e).__name__,
            error=str(e),
        )
        raise PersistenceConflictError(
            "The response was changed concurrently. Please reload and try again."
        ) from e


class ResponseOrchestrator:
    """Coordinates Review, Response and Version changes with the ledger.

    This is the only caller of ``QuotaStore.deduct`` for credits and the
    only caller of the AI provider client.
    """

    def __init__(
        self,
        db: DatabaseConnection,
        quota: QuotaStore,
        provider: AIProviderClient,
        billing: BillingSettings,
        ai_settings: AISettings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.quota = quota
        self.provider = provider
        self.billing = billing
        self.ai_settings = ai_settings
        self._clock = clock

    # ------------------------------------------------------------------
    # Generate
    # ------------------------------------------------------------------

    async def generate(
        self,
        account_id: UUID,
        review_id: UUID,
        tone: ResponseTone | str | None = None,
    ) -> Response:
        """Create the first response for a review.

        Raises:
            NotFoundError: The review does not exist for this account.
            InvalidStateError: The review already has a response.
            InsufficientFundsError: Not enough credits (before or after the AI call).
            TransientProviderError: Provider unavailable after retries.
            PermanentProviderError: Provider rejected the request.
            PersistenceConflictError: Saving failed; the charge was refunded.
        """
        tone = parse_tone(tone) or ResponseTone.DEFAULT
        cost = self.billing.generate_cost

        with LogContext(account_id=str(account_id), review_id=str(review_id)):
            async with self.db.session() as session:
                review = await self._get_review(session, account_id, review_id)
                if review.response is not None:
                    raise InvalidStateError(
                        "Response already exists. Use regenerate to create a new version."
                    )
                context = ReviewContext.from_model(review)
                brand_voice = await load_brand_voice_config(session, account_id)

            await self.quota.ensure_credits(account_id, cost)

            generated = await self._call_provider(context, brand_voice, tone)

            entry = await self.quota.deduct(
                account_id,
                cost,
                UsageAction.GENERATE,
                review_id=review_id,
                detail={
                    "review_snapshot": self._snapshot(context),
                    "tone": tone.value,
                    "generated_at": self._clock().isoformat(),
                },
            )

            # Persist-or-refund runs to completion even if the caller is cancelled.
            return await asyncio.shield(
                self._persist_generated(account_id, review_id, tone, cost, generated, entry)
            )

    async def _persist_generated(
        self,
        account_id: UUID,
        review_id: UUID,
        tone: ResponseTone,
        cost: Decimal,
        generated: GeneratedText,
        entry: LedgerEntry,
    ) -> Response:
        now = self._clock()
        try:
            async with self.db.session() as session:
                response = Response(
                    response_id=generate_uuid(),
                    review_id=review_id,
                    response_text=generated.text,
                    tone_used=tone.value,
                    credits_used=cost,
                    generation_model=generated.model,
                    is_edited=False,
                    is_published=False,
                    created_at=now,
                    updated_at=now,
                )
                session.add(response)
                session.add(
                    ResponseVersion(
                        response_id=response.response_id,
                        sequence=1,
                        response_text=generated.text,
                        tone_used=tone.value,
                        credits_used=cost,
                        is_edited=False,
                        created_at=now,
                    )
                )
                await self.quota.attach_response(session, entry.usage_id, response.response_id)
        except SQLAlchemyError as e:
            await self._compensate(account_id, cost, review_id, None, UsageAction.GENERATE, e)
            raise PersistenceConflictError(
                "The response could not be saved. Your credits were refunded; please try again."
            ) from e

        logger.info(
            "Response generated",
            response_id=str(response.response_id),
            tone=tone.value,
            credits=str(cost),
            remaining=str(entry.remaining),
        )
        return response

    # ------------------------------------------------------------------
    # Regenerate
    # ------------------------------------------------------------------

    async def regenerate(
        self,
        account_id: UUID,
        review_id: UUID,
        tone: ResponseTone | str | None,
    ) -> Response:
        """Replace the response text with a new draft in an explicit tone.

        The previous text is kept as a version and the edited flag is cleared.
        """
        tone = parse_tone(tone)
        if tone is None or tone == ResponseTone.DEFAULT:
            raise ValidationError(
                "Regenerate requires a specific tone",
                details={
                    "allowed": [t.value for t in ResponseTone if t != ResponseTone.DEFAULT]
                },
            )
        cost = self.billing.regenerate_cost

        with LogContext(account_id=str(account_id), review_id=str(review_id)):
            async with self.db.session() as session:
                review = await self._get_review(session, account_id, review_id)
                if review.response is None:
                    raise InvalidStateError(
                        "No response exists. Generate a response first."
                    )
                response_id = review.response.response_id
                previous_tone = review.response.tone_used
                context = ReviewContext.from_model(review)
                brand_voice = await load_brand_voice_config(session, account_id)

            await self.quota.ensure_credits(account_id, cost)

            generated = await self._call_provider(context, brand_voice, tone)

            entry = await self.quota.deduct(
                account_id,
                cost,
                UsageAction.REGENERATE,
                review_id=review_id,
                response_id=response_id,
                detail={
                    "review_snapshot": self._snapshot(context),
                    "previous_tone": previous_tone,
                    "new_tone": tone.value,
                    "regenerated_at": self._clock().isoformat(),
                },
            )

            return await asyncio.shield(
                self._persist_regenerated(
                    account_id, review_id, response_id, tone, cost, generated, entry
                )
            )

    async def _persist_regenerated(
        self,
        account_id: UUID,
        review_id: UUID,
        response_id: UUID,
        tone: ResponseTone,
        cost: Decimal,
        generated: GeneratedText,
        entry: LedgerEntry,
    ) -> Response:
        now = self._clock()
        try:
            async with self.db.session() as session:
                response = await self._lock_response(session, response_id)
                if response is None:
                    raise NotFoundError("Response was deleted while regenerating")

                await self._append_version(session, response, now)
                response.response_text = generated.text
                response.tone_used = tone.value
                response.credits_used = cost
                response.generation_model = generated.model
                response.is_edited = False
                response.edited_at = None
                response.updated_at = now
        except (SQLAlchemyError, NotFoundError) as e:
            await self._compensate(
                account_id, cost, review_id, response_id, UsageAction.REGENERATE, e
            )
            raise PersistenceConflictError(
                "The response could not be saved. Your credits were refunded; please try again."
            ) from e

        logger.info(
            "Response regenerated",
            response_id=str(response_id),
            tone=tone.value,
            credits=str(cost),
            remaining=str(entry.remaining),
        )
        return response

    # ------------------------------------------------------------------
    # Manual edit / restore / publish / delete
    # ------------------------------------------------------------------

    async def edit_response(
        self,
        account_id: UUID,
        review_id: UUID,
        response_text: str,
    ) -> Response:
        """Replace the text by hand. No AI call and no ledger movement.

        The pre-edit text is versioned with its original cost; the edited
        text itself carries no cost.
        """
        text = (response_text or "").strip()
        if not text:
            raise ValidationError("Response text is required")
        if len(text) > self.ai_settings.max_response_chars:
            raise ValidationError(
                f"Response must be {self.ai_settings.max_response_chars} characters or less"
            )

        now = self._clock()
        async with _translate_conflicts():
            async with self.db.session() as session:
                response = await self._get_owned_response(session, account_id, review_id)
                if response.response_text == text:
                    return response

                await self._append_version(session, response, now)
                response.response_text = text
                response.is_edited = True
                response.edited_at = now
                response.credits_used = Decimal("0")
                response.updated_at = now

        logger.info(
            "Response edited",
            account_id=str(account_id),
            review_id=str(review_id),
            response_id=str(response.response_id),
        )
        return response

    async def restore_version(
        self,
        account_id: UUID,
        review_id: UUID,
        version_id: UUID,
    ) -> Response:
        """Make a previous version's text current again."""
        now = self._clock()
        async with _translate_conflicts():
            async with self.db.session() as session:
                response = await self._get_owned_response(session, account_id, review_id)
                result = await session.execute(
                    select(ResponseVersion).where(
                        ResponseVersion.version_id == version_id,
                        ResponseVersion.response_id == response.response_id,
                    )
                )
                version = result.scalar_one_or_none()
                if version is None:
                    raise NotFoundError("Version not found")

                if (
                    version.response_text == response.response_text
                    and version.tone_used == response.tone_used
                ):
                    return response

                await self._append_version(session, response, now)
                response.response_text = version.response_text
                response.tone_used = version.tone_used
                response.credits_used = version.credits_used
                response.is_edited = version.is_edited
                response.edited_at = now if version.is_edited else None
                response.updated_at = now

        logger.info(
            "Response version restored",
            account_id=str(account_id),
            review_id=str(review_id),
            version_id=str(version_id),
        )
        return response

    async def publish(self, account_id: UUID, review_id: UUID) -> Response:
        """Mark the response as approved for posting."""
        now = self._clock()
        async with _translate_conflicts():
            async with self.db.session() as session:
                response = await self._get_owned_response(session, account_id, review_id)
                if response.is_published:
                    raise InvalidStateError("Response is already published")
                response.is_published = True
                response.published_at = now
                response.updated_at = now

        logger.info(
            "Response published",
            account_id=str(account_id),
            review_id=str(review_id),
            response_id=str(response.response_id),
        )
        return response

    async def delete_response(self, account_id: UUID, review_id: UUID) -> None:
        """Remove the response and its versions. The ledger is not touched."""
        async with self.db.session() as session:
            response = await self._get_owned_response(session, account_id, review_id)
            response_id = response.response_id
            await session.delete(response)

        logger.info(
            "Response deleted",
            account_id=str(account_id),
            review_id=str(review_id),
            response_id=str(response_id),
        )

    async def get_response(self, account_id: UUID, review_id: UUID) -> ResponseView:
        async with self.db.session() as session:
            response = await self._get_owned_response(session, account_id, review_id)
            result = await session.execute(
                select(ResponseVersion)
                .where(ResponseVersion.response_id == response.response_id)
                .order_by(ResponseVersion.sequence.desc())
            )
            versions = list(result.scalars().all())
        return ResponseView(response=response, versions=versions)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _call_provider(
        self,
        context: ReviewContext,
        brand_voice: BrandVoiceConfig,
        tone: ResponseTone,
    ) -> GeneratedText:
        override = None if tone == ResponseTone.DEFAULT else tone
        return await self.provider.generate(context, brand_voice, tone_override=override)

    async def _get_review(
        self,
        session: AsyncSession,
        account_id: UUID,
        review_id: UUID,
    ) -> Review:
        result = await session.execute(
            select(Review)
            .options(selectinload(Review.response))
            .where(Review.review_id == review_id, Review.account_id == account_id)
        )
        review = result.scalar_one_or_none()
        if review is None:
            raise NotFoundError("Review not found")
        return review

    async def _get_owned_response(
        self,
        session: AsyncSession,
        account_id: UUID,
        review_id: UUID,
    ) -> Response:
        result = await session.execute(
            select(Response)
            .join(Review, Review.review_id == Response.review_id)
            .where(Review.review_id == review_id, Review.account_id == account_id)
            .with_for_update(of=Response)
        )
        response = result.scalar_one_or_none()
        if response is None:
            review = await session.get(Review, review_id)
            if review is None or review.account_id != account_id:
                raise NotFoundError("Review not found")
            raise NotFoundError("No response exists for this review")
        return response

    async def _lock_response(self, session: AsyncSession, response_id: UUID) -> Response | None:
        result = await session.execute(
            select(Response).where(Response.response_id == response_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def _append_version(
        self,
        session: AsyncSession,
        response: Response,
        now: datetime,
    ) -> ResponseVersion:
        """Record the response's current text before it is overwritten."""
        result = await session.execute(
            select(func.coalesce(func.max(ResponseVersion.sequence), 0)).where(
                ResponseVersion.response_id == response.response_id
            )
        )
        version = ResponseVersion(
            response_id=response.response_id,
            sequence=(result.scalar() or 0) + 1,
            response_text=response.response_text,
            tone_used=response.tone_used,
            credits_used=response.credits_used,
            is_edited=response.is_edited,
            created_at=now,
        )
        session.add(version)
        return version

    async def _compensate(
        self,
        account_id: UUID,
        amount: Decimal,
        review_id: UUID,
        response_id: UUID | None,
        action: UsageAction,
        cause: Exception,
    ) -> None:
        logger.warning(
            "Persisting response failed after charge, refunding",
            account_id=str(account_id),
            review_id=str(review_id),
            amount=str(amount),
            error_type=type(cause).__name__,
        )
        try:
            await self.quota.refund(
                account_id,
                amount,
                review_id=review_id,
                response_id=response_id,
                detail={"reason": "persistence_failed", "refunded_action": action.value},
            )
        except SQLAlchemyError:
            logger.exception(
                "Compensating refund failed",
                account_id=str(account_id),
                review_id=str(review_id),
                amount=str(amount),
            )
            raise

    def _snapshot(self, context: ReviewContext) -> dict[str, Any]:
        return {
            "platform": context.platform,
            "rating": context.rating,
            "text_preview": context.review_text[:SNAPSHOT_PREVIEW_CHARS],
        }

