"""Database module."""

from .connection import (
    DatabaseConnection,
    get_db,
    normalize_url,
    set_db,
)
from .models import (
    CREDIT_ACTIONS,
    Account,
    Base,
    BrandVoice,
    Response,
    ResponseVersion,
    Review,
    TimestampMixin,
    UsageAction,
    UsageRecord,
    generate_uuid,
    utc_now,
)

__all__ = [
    "Account",
    "Base",
    "BrandVoice",
    "CREDIT_ACTIONS",
    "DatabaseConnection",
    "Response",
    "ResponseVersion",
    "Review",
    "TimestampMixin",
    "UsageAction",
    "UsageRecord",
    "generate_uuid",
    "get_db",
    "normalize_url",
    "set_db",
    "utc_now",
]
