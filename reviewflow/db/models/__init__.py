"""SQLAlchemy database models for ReviewFlow."""

from .account import Account
from .base import Base, TimestampMixin, generate_uuid, utc_now
from .brand_voice import BrandVoice
from .response import Response, ResponseVersion
from .review import Review
from .usage_record import CREDIT_ACTIONS, UsageAction, UsageRecord

__all__ = [
    "Account",
    "Base",
    "BrandVoice",
    "CREDIT_ACTIONS",
    "Response",
    "ResponseVersion",
    "Review",
    "TimestampMixin",
    "UsageAction",
    "UsageRecord",
    "generate_uuid",
    "utc_now",
]
