"""Usage record model: the append-only ledger of quota movements."""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, generate_uuid, utc_now


class UsageAction(str, Enum):
    """Kinds of ledger movements."""

    GENERATE = "generate"
    REGENERATE = "regenerate"
    REFUND = "refund"
    SENTIMENT_ANALYSIS = "sentiment_analysis"


# Actions measured in generation credits (as opposed to sentiment quota units).
CREDIT_ACTIONS = (
    UsageAction.GENERATE.value,
    UsageAction.REGENERATE.value,
    UsageAction.REFUND.value,
)


class UsageRecord(Base):
    """A single signed quota movement.

    Positive quantities are consumption, negative quantities are refunds.
    Rows are never updated, except for attaching the response id once a
    generated response has been persisted.
    """

    __tablename__ = "UsageRecords"

    usage_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("Accounts.account_id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="'generate', 'regenerate', 'refund' or 'sentiment_analysis'",
    )
    # Plain references: deleting a review or response leaves these dangling
    # so historical rows are never rewritten.
    review_id: Mapped[UUID | None] = mapped_column(nullable=True)
    response_id: Mapped[UUID | None] = mapped_column(nullable=True)
    details_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_usage_account_action_created", "account_id", "action", "created_at"),
        Index("ix_usage_review", "review_id"),
    )

    @property
    def details(self) -> dict[str, Any] | None:
        """Decoded audit context."""
        if not self.details_json:
            return None
        return json.loads(self.details_json)
