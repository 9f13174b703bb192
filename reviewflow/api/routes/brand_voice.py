"""Brand voice settings routes."""

from uuid import UUID

from fastapi import APIRouter, Depends

from ...db.connection import DatabaseConnection
from ...ai.provider import AIProviderClient
from ...services.brand_voice import (
    get_or_create_brand_voice,
    preview_brand_voice,
    update_brand_voice,
)
from ..dependencies import get_database, get_provider, require_account
from ..models.base import ERROR_RESPONSES
from ..models.brand_voice import (
    BrandVoiceResponse,
    BrandVoiceTestRequest,
    BrandVoiceTestResponse,
    BrandVoiceUpdateRequest,
)

router = APIRouter(prefix="/api/v1/brand-voice", tags=["Brand Voice"])


@router.get("", response_model=BrandVoiceResponse, summary="Get Brand Voice")
async def get_brand_voice(
    account_id: UUID = Depends(require_account),
    db: DatabaseConnection = Depends(get_database),
) -> BrandVoiceResponse:
    async with db.session() as session:
        brand_voice = await get_or_create_brand_voice(session, account_id)
        return BrandVoiceResponse.model_validate(brand_voice)


@router.put("", response_model=BrandVoiceResponse, summary="Update Brand Voice")
async def put_brand_voice(
    body: BrandVoiceUpdateRequest,
    account_id: UUID = Depends(require_account),
    db: DatabaseConnection = Depends(get_database),
) -> BrandVoiceResponse:
    async with db.session() as session:
        brand_voice = await update_brand_voice(
            session,
            account_id,
            tone=body.tone,
            formality=body.formality,
            key_phrases=body.key_phrases,
            style_notes=body.style_notes,
            sample_responses=body.sample_responses,
        )
        return BrandVoiceResponse.model_validate(brand_voice)


@router.post(
    "/test",
    response_model=BrandVoiceTestResponse,
    responses=ERROR_RESPONSES,
    summary="Preview Brand Voice",
)
async def test_brand_voice(
    body: BrandVoiceTestRequest,
    account_id: UUID = Depends(require_account),
    db: DatabaseConnection = Depends(get_database),
    provider: AIProviderClient = Depends(get_provider),
) -> BrandVoiceTestResponse:
    """Draft a reply to a sample review with the current brand voice.

    Nothing is stored and no credits are charged.
    """
    preview = await preview_brand_voice(
        db,
        provider,
        account_id,
        body.review_text,
        platform=body.platform,
        rating=body.rating,
    )
    return BrandVoiceTestResponse(
        response_text=preview.response_text,
        model=preview.model,
        detected_language=preview.detected_language,
        brand_voice=BrandVoiceResponse.model_validate(preview.brand_voice),
    )
