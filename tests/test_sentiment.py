"""Tests for sentiment classification and quota metering."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest
from sqlalchemy import select, update

from reviewflow.config import SentimentSettings
from reviewflow.db.models import Account, Review, UsageRecord
from reviewflow.errors import InsufficientFundsError
from reviewflow.services.sentiment import (
    FALLBACK_CONFIDENCE,
    PROVIDER_CONFIDENCE,
    Sentiment,
    SentimentClassifier,
    SentimentService,
    classify_by_keywords,
    normalize_label,
)


def provider_transport(content: str | None = None, status_code: int = 200, body=None):
    """MockTransport answering like an OpenAI-compatible chat endpoint."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        payload = body if body is not None else {"choices": [{"message": {"content": content}}]}
        return httpx.Response(status_code, json=payload)

    transport = httpx.MockTransport(handler)
    transport.requests = requests
    return transport


def provider_settings(**overrides) -> SentimentSettings:
    values = {"api_key": "sk-sentiment", "api_url": "https://sentiment.test/v1/chat/completions"}
    values.update(overrides)
    return SentimentSettings(**values)


async def stored_sentiment(db, review_id):
    async with db.session() as session:
        return (await session.get(Review, review_id)).sentiment


async def sentiment_rows(db, account_id):
    async with db.session() as session:
        result = await session.execute(
            select(UsageRecord).where(
                UsageRecord.account_id == account_id,
                UsageRecord.action == "sentiment_analysis",
            )
        )
        return list(result.scalars().all())


# ============================================================================
# Heuristics
# ============================================================================


@pytest.mark.unit
class TestKeywordFallback:
    """Tests for classify_by_keywords."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Excellent food and friendly staff!", Sentiment.POSITIVE),
            ("Terrible service, rude waiter. Never again.", Sentiment.NEGATIVE),
            ("We ordered soup.", Sentiment.NEUTRAL),
            ("Great view but awful food", Sentiment.NEUTRAL),
        ],
    )
    def test_keyword_counts(self, text, expected):
        result = classify_by_keywords(text)

        assert result.sentiment == expected
        assert result.confidence == FALLBACK_CONFIDENCE
        assert result.authoritative is False


@pytest.mark.unit
class TestNormalizeLabel:
    """Tests for normalize_label."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("positive", Sentiment.POSITIVE),
            (" Positive.\n", Sentiment.POSITIVE),
            ("NEGATIVE", Sentiment.NEGATIVE),
            ("mixed feelings", Sentiment.NEUTRAL),
        ],
    )
    def test_labels(self, raw, expected):
        assert normalize_label(raw) == expected


# ============================================================================
# Classifier
# ============================================================================


@pytest.mark.unit
class TestSentimentClassifier:
    """Tests for SentimentClassifier."""

    async def test_without_api_key_uses_fallback(self):
        classifier = SentimentClassifier(SentimentSettings(api_key=""))

        result = await classifier.classify("Amazing, highly recommend")

        assert result.sentiment == Sentiment.POSITIVE
        assert result.authoritative is False

    async def test_provider_result_is_authoritative(self):
        transport = provider_transport("negative")
        async with httpx.AsyncClient(transport=transport) as client:
            classifier = SentimentClassifier(provider_settings(), http_client=client)
            result = await classifier.classify("It was fine I guess")

        assert result.sentiment == Sentiment.NEGATIVE
        assert result.confidence == PROVIDER_CONFIDENCE
        assert result.authoritative is True

        request = transport.requests[0]
        assert request.headers["Authorization"] == "Bearer sk-sentiment"
        payload = json.loads(request.content)
        assert payload["messages"][1]["content"].startswith("Analyze the sentiment")

    async def test_provider_error_falls_back(self):
        async with httpx.AsyncClient(transport=provider_transport(status_code=500, body={})) as client:
            classifier = SentimentClassifier(provider_settings(), http_client=client)
            result = await classifier.classify("Terrible, the worst")

        assert result.sentiment == Sentiment.NEGATIVE
        assert result.authoritative is False

    async def test_malformed_payload_falls_back(self):
        async with httpx.AsyncClient(transport=provider_transport(body={"unexpected": 1})) as client:
            classifier = SentimentClassifier(provider_settings(), http_client=client)
            result = await classifier.classify("Just okay")

        assert result.authoritative is False


# ============================================================================
# Service
# ============================================================================


@pytest.mark.integration
class TestSentimentService:
    """Tests for SentimentService.analyze_review."""

    async def test_fallback_is_stored_but_not_charged(
        self, db, sentiment_service, quota_store, account, review
    ):
        outcome = await sentiment_service.analyze_review(
            account.account_id, review.review_id, review.review_text
        )

        assert outcome.analyzed is True
        assert outcome.charged is False
        assert outcome.result.sentiment == Sentiment.POSITIVE
        assert await stored_sentiment(db, review.review_id) == "positive"
        assert (await quota_store.get_account(account.account_id)).sentiment_quota_remaining == 35
        assert await sentiment_rows(db, account.account_id) == []

    async def test_fallback_charged_when_configured(self, db, quota_store, account, review):
        settings = SentimentSettings(api_key="", charge_fallback=True)
        service = SentimentService(db, quota_store, SentimentClassifier(settings), settings)

        outcome = await service.analyze_review(account.account_id, review.review_id, review.review_text)

        assert outcome.charged is True
        assert (await quota_store.get_account(account.account_id)).sentiment_quota_remaining == 34

    async def test_provider_result_is_charged(self, db, quota_store, account, review):
        settings = provider_settings()
        async with httpx.AsyncClient(transport=provider_transport("neutral")) as client:
            service = SentimentService(
                db, quota_store, SentimentClassifier(settings, http_client=client), settings
            )
            outcome = await service.analyze_review(
                account.account_id, review.review_id, review.review_text
            )

        assert outcome.charged is True
        assert outcome.result.sentiment == Sentiment.NEUTRAL
        assert await stored_sentiment(db, review.review_id) == "neutral"

        rows = await sentiment_rows(db, account.account_id)
        assert len(rows) == 1
        assert rows[0].review_id == review.review_id
        assert rows[0].details == {"sentiment": "neutral", "authoritative": True}

    async def test_exhausted_quota_skips_classification(
        self, db, quota_store, sentiment_settings, account, review
    ):
        async with db.session() as session:
            await session.execute(
                update(Account)
                .where(Account.account_id == account.account_id)
                .values(sentiment_quota_remaining=0)
            )
        classifier = SentimentClassifier(sentiment_settings)
        classifier.classify = AsyncMock()
        service = SentimentService(db, quota_store, classifier, sentiment_settings)

        outcome = await service.analyze_review(account.account_id, review.review_id, review.review_text)

        assert outcome.analyzed is False
        classifier.classify.assert_not_awaited()
        assert await stored_sentiment(db, review.review_id) is None

    async def test_lost_quota_race_leaves_sentiment_unset(
        self, db, quota_store, account, review, monkeypatch
    ):
        settings = SentimentSettings(api_key="", charge_fallback=True)
        service = SentimentService(db, quota_store, SentimentClassifier(settings), settings)
        monkeypatch.setattr(
            quota_store,
            "deduct_sentiment",
            AsyncMock(side_effect=InsufficientFundsError(0, 1, quota="sentiment")),
        )

        outcome = await service.analyze_review(account.account_id, review.review_id, review.review_text)

        assert outcome.analyzed is False
        assert outcome.charged is False
        assert await stored_sentiment(db, review.review_id) is None
