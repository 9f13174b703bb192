"""Prompt construction for review response drafts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..db.models import BrandVoice, Review


class ResponseTone(str, Enum):
    """Tone of a stored response.

    DEFAULT means "use the brand voice as configured" and is only produced by
    a first generation without an override.
    """

    DEFAULT = "default"
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    EMPATHETIC = "empathetic"


TONE_OVERRIDES: dict[ResponseTone, str] = {
    ResponseTone.PROFESSIONAL: "polished and business-like",
    ResponseTone.FRIENDLY: "warm, upbeat and personable",
    ResponseTone.EMPATHETIC: (
        "understanding and compassionate, acknowledging the customer's feelings"
    ),
}

FORMALITY_SCALE: dict[int, str] = {
    1: "very casual and conversational, like talking to a friend",
    2: "casual but still polite and friendly",
    3: "balanced mix of professional and approachable",
    4: "formal and professional with proper business language",
    5: "very formal, polished, and highly professional",
}

DEFAULT_FORMALITY = 3


@dataclass(frozen=True)
class BrandVoiceConfig:
    """Detached copy of an account's brand voice, safe to use outside a session."""

    tone: str = "professional"
    formality: int = DEFAULT_FORMALITY
    key_phrases: tuple[str, ...] = ()
    style_notes: str | None = None
    sample_responses: tuple[str, ...] = ()

    @classmethod
    def from_model(cls, brand_voice: BrandVoice) -> BrandVoiceConfig:
        return cls(
            tone=brand_voice.tone,
            formality=brand_voice.formality,
            key_phrases=tuple(brand_voice.key_phrases),
            style_notes=brand_voice.style_notes,
            sample_responses=tuple(brand_voice.sample_responses),
        )


@dataclass(frozen=True)
class ReviewContext:
    """The parts of a review the prompt needs."""

    review_text: str
    platform: str
    rating: int | None = None
    language: str = "English"
    reviewer_name: str | None = None

    @classmethod
    def from_model(cls, review: Review) -> ReviewContext:
        return cls(
            review_text=review.review_text,
            platform=review.platform,
            rating=review.rating,
            language=review.language or "English",
            reviewer_name=review.reviewer_name,
        )


def describe_formality(level: int) -> str:
    """Map a 1-5 formality level to its description; unknown levels use 3."""
    return FORMALITY_SCALE.get(level, FORMALITY_SCALE[DEFAULT_FORMALITY])


def describe_tone(brand_voice: BrandVoiceConfig, tone_override: ResponseTone | None) -> str:
    if tone_override is None or tone_override == ResponseTone.DEFAULT:
        return brand_voice.tone
    return f"{tone_override.value} ({TONE_OVERRIDES[tone_override]})"


def build_system_prompt(
    brand_voice: BrandVoiceConfig,
    language: str,
    max_chars: int = 500,
    max_samples: int = 5,
    tone_override: ResponseTone | None = None,
) -> str:
    """Build the system prompt carrying the brand voice configuration.

    The output depends only on the arguments, so identical inputs always
    produce an identical prompt.
    """
    lines = [
        "You are a customer service representative writing responses to customer reviews.",
        "",
        "IMPORTANT INSTRUCTIONS:",
        f"1. Write the response in {language} (the same language as the review)",
        f"2. Keep the response under {max_chars} characters",
        "3. Be genuine and human - avoid sounding robotic or template-like",
        "4. Address specific points mentioned in the review when relevant",
        "5. Never be defensive or argumentative, even for negative reviews",
        "",
        "BRAND VOICE CONFIGURATION:",
        f"- Tone: {describe_tone(brand_voice, tone_override)}",
        f"- Formality Level: {describe_formality(brand_voice.formality)}",
    ]

    if brand_voice.key_phrases:
        lines.append(
            "- Key Phrases (use at least one or two of these naturally): "
            + ", ".join(brand_voice.key_phrases)
        )

    if brand_voice.style_notes:
        lines.append(f"- Style Guidelines: {brand_voice.style_notes}")

    samples = list(brand_voice.sample_responses)[:max_samples]
    if samples:
        lines.append("")
        lines.append("SAMPLE RESPONSES FOR REFERENCE (match this style):")
        for index, sample in enumerate(samples, start=1):
            lines.append(f'{index}. "{sample}"')

    lines.append("")
    lines.append(
        "Respond ONLY with the response text. Do not include any explanations, "
        "notes, or meta-commentary."
    )
    return "\n".join(lines)


def build_user_prompt(review: ReviewContext) -> str:
    """Build the user message containing the review itself."""
    prompt = f"Write a response to this {review.platform} review"
    if review.rating:
        prompt += f" ({review.rating}/5 stars)"
    prompt += f' in {review.language}:\n\n"{review.review_text}"'
    return prompt


def truncate_response(text: str, max_chars: int = 500, window: int = 100) -> str:
    """Cut ``text`` to ``max_chars``, preferring a sentence boundary.

    If a sentence terminator falls inside the last ``window`` characters of
    the cut, the text ends right after it; otherwise it is hard-cut.
    """
    text = text.strip()
    if len(text) <= max_chars:
        return text

    cut = text[:max_chars]
    boundary = max(cut.rfind("."), cut.rfind("!"), cut.rfind("?"))
    if boundary >= 0 and boundary >= max_chars - window:
        return cut[: boundary + 1]
    return cut.rstrip()
