"""Credit balance and usage history routes."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ...db.models import UsageAction
from ...services.quota_store import MAX_PAGE_SIZE, QuotaStore
from ..dependencies import get_quota_store, require_account
from ..models.base import PaginationMeta
from ..models.credits import (
    BalanceResponse,
    QuotaStatus,
    UsageListResponse,
    UsageRecordResponse,
)

router = APIRouter(prefix="/api/v1/credits", tags=["Credits"])


@router.get("", response_model=BalanceResponse, summary="Get Credit Balance")
async def get_balance(
    account_id: UUID = Depends(require_account),
    quota: QuotaStore = Depends(get_quota_store),
) -> BalanceResponse:
    """Remaining credits and sentiment quota with their reset dates."""
    balance = await quota.get_balance(account_id)
    return BalanceResponse(
        tier=balance.tier,
        credits=QuotaStatus(
            remaining=balance.credits_remaining,
            allowance=balance.credits_allowance,
            used=balance.credits_used,
            resets_at=balance.credits_reset_at,
        ),
        sentiment=QuotaStatus(
            remaining=balance.sentiment_remaining,
            allowance=balance.sentiment_allowance,
            used=balance.sentiment_used,
            resets_at=balance.sentiment_reset_at,
        ),
    )


@router.get("/usage", response_model=UsageListResponse, summary="List Credit Usage")
async def list_usage(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, description=f"Page size, capped at {MAX_PAGE_SIZE}"),
    action: UsageAction | None = Query(None, description="Filter by action"),
    start: datetime | None = Query(None, description="Only rows created at or after"),
    end: datetime | None = Query(None, description="Only rows created at or before"),
    account_id: UUID = Depends(require_account),
    quota: QuotaStore = Depends(get_quota_store),
) -> UsageListResponse:
    """Ledger rows for the caller's account, newest first."""
    usage = await quota.list_usage(
        account_id,
        page=page,
        limit=limit,
        action=action,
        start=start,
        end=end,
    )
    return UsageListResponse(
        records=[UsageRecordResponse.model_validate(record) for record in usage.records],
        pagination=PaginationMeta.build(usage.page, usage.limit, usage.total),
    )
