"""Brand voice model used to shape generated responses."""

import json
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from .account import Account


class BrandVoice(Base, TimestampMixin):
    """Per-account tone, formality and style guidance."""

    __tablename__ = "BrandVoices"

    brand_voice_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("Accounts.account_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    tone: Mapped[str] = mapped_column(String(50), default="professional", nullable=False)
    formality: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    # JSON-serialized string arrays
    key_phrases_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    sample_responses_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    style_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    account: Mapped["Account"] = relationship("Account", back_populates="brand_voice")

    @property
    def key_phrases(self) -> list[str]:
        return json.loads(self.key_phrases_json or "[]")

    @key_phrases.setter
    def key_phrases(self, value: list[str]) -> None:
        self.key_phrases_json = json.dumps(list(value))

    @property
    def sample_responses(self) -> list[str]:
        return json.loads(self.sample_responses_json or "[]")

    @sample_responses.setter
    def sample_responses(self, value: list[str]) -> None:
        self.sample_responses_json = json.dumps(list(value))
