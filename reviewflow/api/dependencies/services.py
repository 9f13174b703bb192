"""Service factories wired from settings and the shared database handle."""

from __future__ import annotations

from fastapi import Depends

from ...ai.provider import AIProviderClient, get_ai_provider
from ...config import get_settings
from ...db.connection import DatabaseConnection, get_db
from ...services.duplicate_guard import DuplicateGuard
from ...services.quota_store import QuotaStore
from ...services.response_orchestrator import ResponseOrchestrator
from ...services.review_service import ReviewService
from ...services.sentiment import SentimentClassifier, SentimentService


def get_database() -> DatabaseConnection:
    """Dependency to get the database handle."""
    return get_db()


def get_provider() -> AIProviderClient:
    """Dependency to get the AI provider client."""
    return get_ai_provider()


def get_sentiment_classifier() -> SentimentClassifier:
    return SentimentClassifier(get_settings().sentiment)


def get_quota_store(db: DatabaseConnection = Depends(get_database)) -> QuotaStore:
    """Dependency to get the quota store."""
    return QuotaStore(db, get_settings().billing)


def get_orchestrator(
    db: DatabaseConnection = Depends(get_database),
    quota: QuotaStore = Depends(get_quota_store),
    provider: AIProviderClient = Depends(get_provider),
) -> ResponseOrchestrator:
    """Dependency to get the response orchestrator."""
    settings = get_settings()
    return ResponseOrchestrator(
        db=db,
        quota=quota,
        provider=provider,
        billing=settings.billing,
        ai_settings=settings.ai,
    )


def get_review_service(
    db: DatabaseConnection = Depends(get_database),
    quota: QuotaStore = Depends(get_quota_store),
    classifier: SentimentClassifier = Depends(get_sentiment_classifier),
) -> ReviewService:
    """Dependency to get the review service."""
    settings = get_settings()
    return ReviewService(
        db=db,
        guard=DuplicateGuard(settings.billing.duplicate_window_seconds),
        sentiment=SentimentService(db, quota, classifier, settings.sentiment),
    )
