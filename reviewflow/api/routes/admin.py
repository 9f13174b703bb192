"""Admin routes: account provisioning and the billing cycle rollover sweep.

Both are meant to be called by trusted automation (signup hook, cron) and are
guarded by the shared admin token.
"""

from fastapi import APIRouter, Body, Depends, status

from ...logging.config import get_logger
from ...services.quota_store import QuotaStore
from ..dependencies import get_quota_store, require_admin
from ..models.credits import (
    AccountCreateRequest,
    AccountResponse,
    RolloverRequest,
    RolloverResponse,
)

logger = get_logger(__name__)
router = APIRouter(
    prefix="/api/v1/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


@router.post(
    "/accounts",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Account",
)
async def create_account(
    body: AccountCreateRequest,
    quota: QuotaStore = Depends(get_quota_store),
) -> AccountResponse:
    """Open an account with the tier's default allowances."""
    account = await quota.create_account(tier=body.tier, account_id=body.account_id)
    return AccountResponse.model_validate(account)


@router.post(
    "/billing/rollover",
    response_model=RolloverResponse,
    summary="Run Billing Rollover",
    description="Reset allowances for every account whose billing cycle has ended",
)
async def run_rollover(
    body: RolloverRequest | None = Body(default=None),
    quota: QuotaStore = Depends(get_quota_store),
) -> RolloverResponse:
    result = await quota.rollover_due_accounts(body.now if body else None)
    logger.info(
        "Rollover triggered via admin API",
        accounts_reset=result.accounts_reset,
        failures=len(result.failures),
    )
    return RolloverResponse(
        accounts_checked=result.accounts_checked,
        accounts_reset=result.accounts_reset,
        failures=result.failures,
    )
