"""Response and ResponseVersion models."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, generate_uuid, utc_now

if TYPE_CHECKING:
    from .review import Review


class Response(Base, TimestampMixin):
    """The current reply draft for a review (at most one per review)."""

    __tablename__ = "Responses"

    response_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    review_id: Mapped[UUID] = mapped_column(
        ForeignKey("Reviews.review_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    response_text: Mapped[str] = mapped_column(Text, nullable=False)
    tone_used: Mapped[str] = mapped_column(String(50), nullable=False)
    credits_used: Mapped[Decimal] = mapped_column(
        nullable=False,
        comment="Credits charged for the text currently held",
    )
    generation_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    review: Mapped["Review"] = relationship("Review", back_populates="response")
    versions: Mapped[list["ResponseVersion"]] = relationship(
        "ResponseVersion",
        back_populates="response",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ResponseVersion.sequence",
    )


class ResponseVersion(Base):
    """A trailing snapshot of what a Response's text used to be."""

    __tablename__ = "ResponseVersions"

    version_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    response_id: Mapped[UUID] = mapped_column(
        ForeignKey("Responses.response_id", ondelete="CASCADE"),
        nullable=False,
    )
    # Monotonic per response; created_at alone can tie within one clock tick.
    sequence: Mapped[int] = mapped_column(nullable=False)
    response_text: Mapped[str] = mapped_column(Text, nullable=False)
    tone_used: Mapped[str] = mapped_column(String(50), nullable=False)
    credits_used: Mapped[Decimal] = mapped_column(nullable=False)
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )

    response: Mapped["Response"] = relationship("Response", back_populates="versions")

    __table_args__ = (
        Index("ix_response_versions_response_seq", "response_id", "sequence", unique=True),
    )
