"""Review API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ...services.review_service import ReviewCreate, ReviewService
from ..dependencies import get_review_service, require_account
from ..models.base import ERROR_RESPONSES, PaginationMeta
from ..models.review import (
    CreateReviewResponse,
    ReviewListResponse,
    ReviewResponse,
    SentimentInfo,
)

router = APIRouter(prefix="/api/v1/reviews", tags=["Reviews"], responses=ERROR_RESPONSES)


@router.post(
    "",
    response_model=CreateReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Review",
    description="Store a customer review and classify its sentiment when quota remains",
)
async def create_review(
    body: ReviewCreate,
    account_id: UUID = Depends(require_account),
    service: ReviewService = Depends(get_review_service),
) -> CreateReviewResponse:
    created = await service.create_review(account_id, body)
    result = created.sentiment.result

    return CreateReviewResponse(
        review=ReviewResponse.model_validate(created.review),
        sentiment=SentimentInfo(
            analyzed=created.sentiment.analyzed,
            authoritative=bool(result and result.authoritative),
            charged=created.sentiment.charged,
            confidence=result.confidence if result else None,
        ),
    )


@router.get("", response_model=ReviewListResponse, summary="List Reviews")
async def list_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    account_id: UUID = Depends(require_account),
    service: ReviewService = Depends(get_review_service),
) -> ReviewListResponse:
    reviews, total = await service.list_reviews(account_id, page=page, limit=limit)
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(review) for review in reviews],
        pagination=PaginationMeta.build(page, limit, total),
    )


@router.get("/{review_id}", response_model=ReviewResponse, summary="Get Review")
async def get_review(
    review_id: UUID,
    account_id: UUID = Depends(require_account),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    review = await service.get_review(account_id, review_id)
    return ReviewResponse.model_validate(review)


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Review",
    description="Delete a review with its response; the credit ledger is unchanged",
)
async def delete_review(
    review_id: UUID,
    account_id: UUID = Depends(require_account),
    service: ReviewService = Depends(get_review_service),
) -> Response:
    await service.delete_review(account_id, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
