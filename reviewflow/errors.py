"""Error taxonomy surfaced by the ledger and response services.

Provider and database exceptions never cross the service boundary; they are
translated into one of these types. Each error carries a stable ``code`` the
HTTP layer maps to a status.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any


class ReviewFlowError(Exception):
    """Base class for all domain errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ReviewFlowError):
    """Caller-supplied data is malformed; rejected before any side effect."""

    code = "VALIDATION_ERROR"


class NotFoundError(ReviewFlowError):
    """The account, review, response or version does not exist for the caller."""

    code = "NOT_FOUND"


class InvalidStateError(ReviewFlowError):
    """The operation does not apply to the review's current state."""

    code = "INVALID_STATE"


class DuplicateReviewError(ReviewFlowError):
    """Identical review text was submitted moments ago."""

    code = "DUPLICATE_REVIEW"


class InsufficientFundsError(ReviewFlowError):
    """The account cannot cover the requested amount."""

    code = "INSUFFICIENT_CREDITS"

    def __init__(
        self,
        remaining: Decimal | int,
        required: Decimal | int,
        next_reset_at: datetime | None = None,
        quota: str = "credits",
    ):
        super().__init__(
            f"Insufficient {quota}: {required} required, {remaining} remaining",
            details={
                "quota": quota,
                "remaining": str(remaining),
                "required": str(required),
                "reset_date": next_reset_at.isoformat() if next_reset_at else None,
            },
        )
        self.remaining = remaining
        self.required = required
        self.next_reset_at = next_reset_at
        self.quota = quota


class ProviderError(ReviewFlowError):
    """Base class for AI provider failures."""

    code = "AI_PROVIDER_ERROR"


class TransientProviderError(ProviderError):
    """Provider kept failing with retryable errors; try again later."""

    code = "AI_SERVICE_UNAVAILABLE"

    def __init__(self, message: str, retry_after_seconds: int = 60):
        super().__init__(message, details={"retry_after": retry_after_seconds})
        self.retry_after_seconds = retry_after_seconds


class PermanentProviderError(ProviderError):
    """Provider rejected the request or is misconfigured; retrying will not help."""

    code = "AI_PROVIDER_REJECTED"


class PersistenceConflictError(ReviewFlowError):
    """A concurrent write won the race after the ledger check; charge was refunded."""

    code = "PERSISTENCE_CONFLICT"

    def __init__(self, message: str, retry_after_seconds: int = 1):
        super().__init__(message, details={"retry_after": retry_after_seconds})
        self.retry_after_seconds = retry_after_seconds
