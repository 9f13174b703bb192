"""Credit balance, usage ledger and admin API models."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from .base import BaseResponse, PaginationMeta


class QuotaStatus(BaseModel):
    remaining: Decimal
    allowance: Decimal
    used: Decimal
    resets_at: datetime


class BalanceResponse(BaseModel):
    """Current balances for the caller's account."""

    tier: str
    credits: QuotaStatus
    sentiment: QuotaStatus


class UsageRecordResponse(BaseResponse):
    usage_id: UUID
    action: str
    quantity: Decimal
    review_id: UUID | None = None
    response_id: UUID | None = None
    details: dict[str, Any] | None = None
    created_at: datetime


class UsageListResponse(BaseModel):
    records: list[UsageRecordResponse]
    pagination: PaginationMeta


class AccountCreateRequest(BaseModel):
    tier: str | None = Field(default=None, description="Defaults to the configured default tier")
    account_id: UUID | None = None


class AccountResponse(BaseResponse):
    account_id: UUID
    tier: str
    credits_remaining: Decimal
    sentiment_quota_remaining: int
    credits_cycle_anchor: datetime
    sentiment_cycle_anchor: datetime


class RolloverRequest(BaseModel):
    now: datetime | None = Field(
        default=None,
        description="Evaluate the sweep as of this instant (defaults to the current time)",
    )


class RolloverResponse(BaseModel):
    accounts_checked: int
    accounts_reset: int
    failures: list[str]
