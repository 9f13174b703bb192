"""Brand voice lookup, updates and previews."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..ai.prompts import DEFAULT_FORMALITY, BrandVoiceConfig, ResponseTone, ReviewContext
from ..ai.provider import AIProviderClient
from ..db.connection import DatabaseConnection
from ..db.models import Account, BrandVoice
from ..errors import NotFoundError, ValidationError
from ..logging.config import get_logger
from .language import detect_language

logger = get_logger(__name__)

BRAND_TONES = (
    ResponseTone.PROFESSIONAL.value,
    ResponseTone.FRIENDLY.value,
    ResponseTone.EMPATHETIC.value,
)


async def get_or_create_brand_voice(session: AsyncSession, account_id: UUID) -> BrandVoice:
    """Find the account's brand voice or create the default one."""
    result = await session.execute(
        select(BrandVoice).where(BrandVoice.account_id == account_id)
    )
    brand_voice = result.scalar_one_or_none()

    if not brand_voice:
        if await session.get(Account, account_id) is None:
            raise NotFoundError(f"Account {account_id} not found")
        brand_voice = BrandVoice(
            account_id=account_id,
            tone=ResponseTone.PROFESSIONAL.value,
            formality=DEFAULT_FORMALITY,
            key_phrases_json="[]",
            sample_responses_json="[]",
        )
        session.add(brand_voice)
        await session.flush()
        logger.info("Created default brand voice", account_id=str(account_id))

    return brand_voice


async def load_brand_voice_config(session: AsyncSession, account_id: UUID) -> BrandVoiceConfig:
    return BrandVoiceConfig.from_model(await get_or_create_brand_voice(session, account_id))


async def update_brand_voice(
    session: AsyncSession,
    account_id: UUID,
    tone: str | None = None,
    formality: int | None = None,
    key_phrases: list[str] | None = None,
    style_notes: str | None = None,
    sample_responses: list[str] | None = None,
) -> BrandVoice:
    """Apply a partial update to the account's brand voice."""
    brand_voice = await get_or_create_brand_voice(session, account_id)

    if tone is not None:
        if tone not in BRAND_TONES:
            raise ValidationError(f"Unsupported brand tone: {tone}")
        brand_voice.tone = tone
    if formality is not None:
        if not 1 <= formality <= 5:
            raise ValidationError("Formality must be between 1 and 5")
        brand_voice.formality = formality
    if key_phrases is not None:
        brand_voice.key_phrases = [phrase.strip() for phrase in key_phrases if phrase.strip()]
    if style_notes is not None:
        brand_voice.style_notes = style_notes.strip() or None
    if sample_responses is not None:
        brand_voice.sample_responses = [s.strip() for s in sample_responses if s.strip()]

    await session.flush()
    return brand_voice


@dataclass
class BrandVoicePreview:
    """A sample reply drafted with the account's brand voice."""

    response_text: str
    model: str
    detected_language: str
    brand_voice: BrandVoiceConfig


async def preview_brand_voice(
    db: DatabaseConnection,
    provider: AIProviderClient,
    account_id: UUID,
    review_text: str,
    platform: str = "Google",
    rating: int | None = None,
) -> BrandVoicePreview:
    """Draft a reply to a sample review without touching the ledger.

    Raises:
        NotFoundError: The account does not exist.
        ValidationError: The sample review text is empty.
        TransientProviderError: Provider unavailable after retries.
        PermanentProviderError: Provider rejected the request.
    """
    review_text = (review_text or "").strip()
    if not review_text:
        raise ValidationError("Review text is required")

    async with db.session() as session:
        brand_voice = await load_brand_voice_config(session, account_id)

    language = detect_language(review_text).language
    generated = await provider.generate(
        ReviewContext(
            review_text=review_text,
            platform=platform,
            rating=rating,
            language=language,
        ),
        brand_voice,
    )

    logger.info(
        "Brand voice preview generated",
        account_id=str(account_id),
        language=language,
        model=generated.model,
    )
    return BrandVoicePreview(
        response_text=generated.text,
        model=generated.model,
        detected_language=language,
        brand_voice=brand_voice,
    )
