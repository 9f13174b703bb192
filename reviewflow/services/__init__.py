"""Ledger, billing cycle and response services."""

from .billing_cycle import current_cycle_start, is_cycle_due, next_reset
from .duplicate_guard import DuplicateGuard
from .quota_store import Balance, LedgerEntry, QuotaStore, RolloverResult, UsagePage
from .response_orchestrator import ResponseOrchestrator, ResponseView
from .review_service import PLATFORMS, CreatedReview, ReviewCreate, ReviewService
from .sentiment import (
    Sentiment,
    SentimentClassifier,
    SentimentOutcome,
    SentimentResult,
    SentimentService,
    classify_by_keywords,
)

__all__ = [
    "Balance",
    "CreatedReview",
    "DuplicateGuard",
    "LedgerEntry",
    "PLATFORMS",
    "QuotaStore",
    "ResponseOrchestrator",
    "ResponseView",
    "ReviewCreate",
    "ReviewService",
    "RolloverResult",
    "Sentiment",
    "SentimentClassifier",
    "SentimentOutcome",
    "SentimentResult",
    "SentimentService",
    "UsagePage",
    "classify_by_keywords",
    "current_cycle_start",
    "is_cycle_due",
    "next_reset",
]
