"""FastAPI dependencies."""

from .auth import require_account, require_admin
from .services import (
    get_database,
    get_orchestrator,
    get_provider,
    get_quota_store,
    get_review_service,
    get_sentiment_classifier,
)

__all__ = [
    "get_database",
    "get_orchestrator",
    "get_provider",
    "get_quota_store",
    "get_review_service",
    "get_sentiment_classifier",
    "require_account",
    "require_admin",
]
