"""Account model holding the running credit and sentiment balances."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, generate_uuid, utc_now

if TYPE_CHECKING:
    from .brand_voice import BrandVoice
    from .review import Review


class Account(Base, TimestampMixin):
    """One tenant with its remaining allowances for the current cycle.

    ``credits_remaining`` and ``sentiment_quota_remaining`` are only ever
    changed by the QuotaStore (deduct, refund, rollover).
    """

    __tablename__ = "Accounts"

    account_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    tier: Mapped[str] = mapped_column(
        String(50),
        default="FREE",
        nullable=False,
        comment="Subscription tier: 'FREE', 'STARTER' or 'GROWTH'",
    )
    credits_remaining: Mapped[Decimal] = mapped_column(nullable=False)
    credits_cycle_anchor: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
        comment="Start of the current credits cycle",
    )
    sentiment_quota_remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    sentiment_cycle_anchor: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
        comment="Start of the current sentiment cycle",
    )

    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    brand_voice: Mapped["BrandVoice | None"] = relationship(
        "BrandVoice",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    __table_args__ = (
        CheckConstraint("credits_remaining >= 0", name="ck_accounts_credits_non_negative"),
        CheckConstraint(
            "sentiment_quota_remaining >= 0",
            name="ck_accounts_sentiment_non_negative",
        ),
    )
