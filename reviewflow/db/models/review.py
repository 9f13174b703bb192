"""Review model."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from .account import Account
    from .response import Response


class Review(Base, TimestampMixin):
    """A single customer review owned by an account."""

    __tablename__ = "Reviews"

    review_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("Accounts.account_id", ondelete="CASCADE"),
        nullable=False,
    )
    platform: Mapped[str] = mapped_column(String(50), nullable=False)
    review_text: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reviewer_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    review_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    language: Mapped[str] = mapped_column(
        String(50),
        default="English",
        nullable=False,
    )
    sentiment: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="'positive', 'neutral' or 'negative'",
    )

    account: Mapped["Account"] = relationship("Account", back_populates="reviews")
    response: Mapped["Response | None"] = relationship(
        "Response",
        back_populates="review",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    __table_args__ = (
        Index("ix_reviews_account_created", "account_id", "created_at"),
    )
