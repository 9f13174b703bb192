"""Sentiment classification for incoming reviews.

The classifier calls an OpenAI-compatible chat endpoint over httpx and falls
back to a keyword count when the provider is unconfigured or failing. Only
provider-backed results are authoritative; fallback results are stored on
the review but do not consume sentiment quota unless
``SENTIMENT_CHARGE_FALLBACK`` is enabled.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

import httpx
from sqlalchemy import update

from ..config import SentimentSettings, get_settings
from ..db.connection import DatabaseConnection
from ..db.models import Review
from ..errors import InsufficientFundsError
from ..logging.config import get_logger
from .quota_store import QuotaStore

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a sentiment analysis system. Analyze the sentiment of customer "
    "reviews and respond ONLY with one word: positive, neutral, or negative. "
    "Do not include any other text or explanation."
)

PROVIDER_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.6

POSITIVE_KEYWORDS = (
    "great",
    "excellent",
    "amazing",
    "wonderful",
    "fantastic",
    "love",
    "perfect",
    "best",
    "awesome",
    "outstanding",
    "superb",
    "brilliant",
    "highly recommend",
    "five star",
    "5 star",
    "happy",
    "satisfied",
    "impressed",
    "thank",
    "helpful",
    "friendly",
    "professional",
)

NEGATIVE_KEYWORDS = (
    "terrible",
    "awful",
    "horrible",
    "worst",
    "bad",
    "poor",
    "disappointing",
    "disappointed",
    "hate",
    "never again",
    "waste",
    "rude",
    "unprofessional",
    "scam",
    "fraud",
    "broken",
    "defective",
    "refund",
    "complaint",
    "one star",
    "1 star",
    "angry",
    "frustrated",
)


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class SentimentResult:
    """A classification and whether it came from the provider."""

    sentiment: Sentiment
    confidence: float
    authoritative: bool


@dataclass(frozen=True)
class SentimentOutcome:
    """What happened when a review was analysed."""

    result: SentimentResult | None
    charged: bool = False

    @property
    def analyzed(self) -> bool:
        return self.result is not None


def normalize_label(raw: str) -> Sentiment:
    """Map free-form provider output onto the three labels."""
    text = raw.strip().lower()
    if "positive" in text:
        return Sentiment.POSITIVE
    if "negative" in text:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def classify_by_keywords(text: str) -> SentimentResult:
    """Keyword-count heuristic used when the provider is unavailable."""
    lowered = text.lower()
    positive = sum(1 for word in POSITIVE_KEYWORDS if word in lowered)
    negative = sum(1 for word in NEGATIVE_KEYWORDS if word in lowered)

    if positive > negative:
        sentiment = Sentiment.POSITIVE
    elif negative > positive:
        sentiment = Sentiment.NEGATIVE
    else:
        sentiment = Sentiment.NEUTRAL

    return SentimentResult(
        sentiment=sentiment,
        confidence=FALLBACK_CONFIDENCE,
        authoritative=False,
    )


class SentimentClassifier:
    """Best-effort classifier; never raises for provider trouble."""

    def __init__(
        self,
        settings: SentimentSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings().sentiment
        self._http_client = http_client

    async def classify(self, text: str) -> SentimentResult:
        if not self.settings.api_key:
            logger.debug("Sentiment provider not configured, using keyword fallback")
            return classify_by_keywords(text)

        try:
            label = await self._call_provider(text)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(
                "Sentiment provider failed, using keyword fallback",
                error_type=type(e).__name__,
                error=str(e),
            )
            return classify_by_keywords(text)

        return SentimentResult(
            sentiment=normalize_label(label),
            confidence=PROVIDER_CONFIDENCE,
            authoritative=True,
        )

    async def _call_provider(self, text: str) -> str:
        payload = {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f'Analyze the sentiment of this review:\n\n"{text}"\n\nSentiment:',
                },
            ],
            "temperature": 0.1,
            "max_tokens": 10,
        }
        headers = {"Authorization": f"Bearer {self.settings.api_key}"}

        if self._http_client is not None:
            response = await self._http_client.post(
                self.settings.api_url,
                json=payload,
                headers=headers,
                timeout=self.settings.timeout_seconds,
            )
        else:
            async with httpx.AsyncClient(timeout=self.settings.timeout_seconds) as client:
                response = await client.post(
                    self.settings.api_url,
                    json=payload,
                    headers=headers,
                )

        response.raise_for_status()
        data = response.json()
        return data["choices"][0]["message"]["content"]


class SentimentService:
    """Runs the classifier for a review and meters sentiment quota.

    Quota is consumed only after a successful classification and never
    refunded. If the deduction fails the review's sentiment stays unset.
    """

    def __init__(
        self,
        db: DatabaseConnection,
        quota: QuotaStore,
        classifier: SentimentClassifier,
        settings: SentimentSettings | None = None,
    ):
        self.db = db
        self.quota = quota
        self.classifier = classifier
        self.settings = settings or classifier.settings

    async def analyze_review(
        self,
        account_id: UUID,
        review_id: UUID,
        review_text: str,
    ) -> SentimentOutcome:
        account = await self.quota.get_account(account_id)
        if account.sentiment_quota_remaining <= 0:
            logger.info(
                "Sentiment quota exhausted, skipping analysis",
                account_id=str(account_id),
                review_id=str(review_id),
            )
            return SentimentOutcome(result=None)

        result = await self.classifier.classify(review_text)

        charged = False
        if result.authoritative or self.settings.charge_fallback:
            try:
                await self.quota.deduct_sentiment(
                    account_id,
                    review_id=review_id,
                    detail={
                        "sentiment": result.sentiment.value,
                        "authoritative": result.authoritative,
                    },
                )
            except InsufficientFundsError:
                logger.info(
                    "Sentiment quota ran out before charge, leaving sentiment unset",
                    account_id=str(account_id),
                    review_id=str(review_id),
                )
                return SentimentOutcome(result=None)
            charged = True

        async with self.db.session() as session:
            await session.execute(
                update(Review)
                .where(Review.review_id == review_id)
                .values(sentiment=result.sentiment.value)
                .execution_options(synchronize_session=False)
            )

        logger.info(
            "Review sentiment analysed",
            account_id=str(account_id),
            review_id=str(review_id),
            sentiment=result.sentiment.value,
            authoritative=result.authoritative,
            charged=charged,
        )
        return SentimentOutcome(result=result, charged=charged)
