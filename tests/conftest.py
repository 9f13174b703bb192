"""Pytest configuration and fixtures for ReviewFlow tests."""

from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import httpx
import openai
import pytest

from reviewflow.ai.provider import AIProviderClient
from reviewflow.config import (
    AISettings,
    BillingSettings,
    RetrySettings,
    SentimentSettings,
)
from reviewflow.db.connection import DatabaseConnection
from reviewflow.db.models import Review, generate_uuid
from reviewflow.services.duplicate_guard import DuplicateGuard
from reviewflow.services.quota_store import QuotaStore
from reviewflow.services.response_orchestrator import ResponseOrchestrator
from reviewflow.services.review_service import ReviewService
from reviewflow.services.sentiment import SentimentClassifier, SentimentService

START_TIME = datetime(2024, 1, 15, 10, 0, 0)


# ============================================================================
# Test Doubles
# ============================================================================


class FakeClock:
    """Manually advanced naive-UTC clock."""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingSleeper:
    """Async sleeper that records requested delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_completion(text: str, model: str = "gpt-4o-mini") -> SimpleNamespace:
    """Build an object shaped like an OpenAI chat completion."""
    return SimpleNamespace(
        model=model,
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
    )


def make_openai_client(*results: Any) -> MagicMock:
    """OpenAI client double whose create() yields ``results`` in order.

    Exceptions in ``results`` are raised, anything else is returned.
    """
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=list(results))
    return client


_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(cls: type[openai.APIStatusError], status_code: int, headers=None):
    """Instantiate an openai status error with a realistic response."""
    response = httpx.Response(status_code, request=_REQUEST, headers=headers or {})
    return cls(f"HTTP {status_code}", response=response, body=None)


def rate_limit_error(retry_after: str | None = None) -> openai.RateLimitError:
    headers = {"retry-after": retry_after} if retry_after else None
    return status_error(openai.RateLimitError, 429, headers)


def overloaded_error() -> openai.InternalServerError:
    return status_error(openai.InternalServerError, 529)


def bad_request_error() -> openai.BadRequestError:
    return status_error(openai.BadRequestError, 400)


def auth_error() -> openai.AuthenticationError:
    return status_error(openai.AuthenticationError, 401)


def connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=_REQUEST)


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture
def billing_settings() -> BillingSettings:
    return BillingSettings(
        generate_cost=Decimal("1.0"),
        regenerate_cost=Decimal("0.5"),
        cycle_length_days=30,
        duplicate_window_seconds=300,
        default_tier="FREE",
    )


@pytest.fixture
def ai_settings() -> AISettings:
    return AISettings(
        api_key="test-key",
        model="gpt-4o-mini",
        max_response_chars=500,
        truncation_window=100,
        max_sample_responses=5,
    )


@pytest.fixture
def retry_settings() -> RetrySettings:
    return RetrySettings(
        max_attempts=3,
        base_delay_seconds=1.0,
        max_delay_seconds=30.0,
        retry_after_hint_seconds=60,
    )


@pytest.fixture
def sentiment_settings() -> SentimentSettings:
    return SentimentSettings(api_key="", charge_fallback=False)


# ============================================================================
# Database and Services
# ============================================================================


@pytest.fixture
async def db(tmp_path) -> DatabaseConnection:
    """A fresh SQLite database file per test."""
    database = DatabaseConnection(url=f"sqlite+aiosqlite:///{tmp_path / 'reviewflow.db'}")
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def quota_store(db, billing_settings, clock) -> QuotaStore:
    return QuotaStore(db, billing_settings, clock=clock)


@pytest.fixture
def openai_client() -> MagicMock:
    """Default provider double: every call returns the same draft."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=make_completion("Thank you for your kind words! We hope to see you again.")
    )
    return client


@pytest.fixture
def provider(ai_settings, retry_settings, openai_client, sleeper) -> AIProviderClient:
    return AIProviderClient(
        settings=ai_settings,
        retry=retry_settings,
        client=openai_client,
        sleep=sleeper,
    )


@pytest.fixture
def orchestrator(db, quota_store, provider, billing_settings, ai_settings, clock):
    return ResponseOrchestrator(
        db=db,
        quota=quota_store,
        provider=provider,
        billing=billing_settings,
        ai_settings=ai_settings,
        clock=clock,
    )


@pytest.fixture
def sentiment_service(db, quota_store, sentiment_settings) -> SentimentService:
    return SentimentService(
        db,
        quota_store,
        SentimentClassifier(sentiment_settings),
        sentiment_settings,
    )


@pytest.fixture
def review_service(db, sentiment_service, billing_settings, clock) -> ReviewService:
    return ReviewService(
        db=db,
        guard=DuplicateGuard(billing_settings.duplicate_window_seconds, clock=clock),
        sentiment=sentiment_service,
        clock=clock,
    )


@pytest.fixture
async def account(quota_store):
    """A FREE tier account (15 credits, 35 sentiment units)."""
    return await quota_store.create_account("FREE")


async def add_review(
    db: DatabaseConnection,
    account_id: UUID,
    text: str = "Great service, friendly staff!",
    platform: str = "Google",
    rating: int | None = 5,
    created_at: datetime = START_TIME,
) -> Review:
    """Insert a review directly, bypassing intake."""
    review = Review(
        review_id=generate_uuid(),
        account_id=account_id,
        platform=platform,
        review_text=text,
        rating=rating,
        language="English",
        created_at=created_at,
        updated_at=created_at,
    )
    async with db.session() as session:
        session.add(review)
    return review


@pytest.fixture
async def review(db, account) -> Review:
    return await add_review(db, account.account_id)
