"""Response generation and editing routes."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Response, status

from ...services.quota_store import QuotaStore
from ...services.response_orchestrator import ResponseOrchestrator
from ..dependencies import get_orchestrator, get_quota_store, require_account
from ..models.base import ERROR_RESPONSES
from ..models.response import (
    EditResponseRequest,
    GenerateRequest,
    GenerationResult,
    RegenerateRequest,
    ResponseDetail,
    ResponseWithVersions,
    RestoreVersionRequest,
    VersionDetail,
)

router = APIRouter(
    prefix="/api/v1/reviews/{review_id}",
    tags=["Responses"],
    responses=ERROR_RESPONSES,
)


@router.post(
    "/generate",
    response_model=GenerationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Generate Response",
    description="Draft the first response for a review (1 credit by default)",
)
async def generate_response(
    review_id: UUID,
    body: GenerateRequest | None = Body(default=None),
    account_id: UUID = Depends(require_account),
    orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
    quota: QuotaStore = Depends(get_quota_store),
) -> GenerationResult:
    tone = body.tone if body else None
    response = await orchestrator.generate(account_id, review_id, tone)
    balance = await quota.get_balance(account_id)

    return GenerationResult(
        response=ResponseDetail.model_validate(response),
        credits_used=response.credits_used,
        credits_remaining=balance.credits_remaining,
    )


@router.post(
    "/regenerate",
    response_model=GenerationResult,
    summary="Regenerate Response",
    description="Replace the response with a new draft in a different tone (0.5 credits by default)",
)
async def regenerate_response(
    review_id: UUID,
    body: RegenerateRequest,
    account_id: UUID = Depends(require_account),
    orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
    quota: QuotaStore = Depends(get_quota_store),
) -> GenerationResult:
    response = await orchestrator.regenerate(account_id, review_id, body.tone)
    balance = await quota.get_balance(account_id)

    return GenerationResult(
        response=ResponseDetail.model_validate(response),
        credits_used=response.credits_used,
        credits_remaining=balance.credits_remaining,
    )


@router.get(
    "/response",
    response_model=ResponseWithVersions,
    summary="Get Response",
)
async def get_response(
    review_id: UUID,
    account_id: UUID = Depends(require_account),
    orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
) -> ResponseWithVersions:
    view = await orchestrator.get_response(account_id, review_id)
    return ResponseWithVersions(
        response=ResponseDetail.model_validate(view.response),
        versions=[VersionDetail.model_validate(v) for v in view.versions],
    )


@router.put(
    "/response",
    response_model=ResponseDetail,
    summary="Edit Response",
    description="Replace the response text by hand; no credits are used",
)
async def edit_response(
    review_id: UUID,
    body: EditResponseRequest,
    account_id: UUID = Depends(require_account),
    orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
) -> ResponseDetail:
    response = await orchestrator.edit_response(account_id, review_id, body.response_text)
    return ResponseDetail.model_validate(response)


@router.delete(
    "/response",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Response",
)
async def delete_response(
    review_id: UUID,
    account_id: UUID = Depends(require_account),
    orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
) -> Response:
    await orchestrator.delete_response(account_id, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/response/restore",
    response_model=ResponseDetail,
    summary="Restore Version",
)
async def restore_version(
    review_id: UUID,
    body: RestoreVersionRequest,
    account_id: UUID = Depends(require_account),
    orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
) -> ResponseDetail:
    response = await orchestrator.restore_version(account_id, review_id, body.version_id)
    return ResponseDetail.model_validate(response)


@router.post(
    "/publish",
    response_model=ResponseDetail,
    summary="Publish Response",
)
async def publish_response(
    review_id: UUID,
    account_id: UUID = Depends(require_account),
    orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
) -> ResponseDetail:
    response = await orchestrator.publish(account_id, review_id)
    return ResponseDetail.model_validate(response)
