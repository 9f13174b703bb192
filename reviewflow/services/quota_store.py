"""Quota Store: per-account balances and the append-only usage ledger.

This module is the only writer of ``Account.credits_remaining`` and
``Account.sentiment_quota_remaining``. Every movement happens inside one
database transaction that both changes the counter and inserts the matching
UsageRecord.

The check-then-decrement is a single conditional UPDATE::

    UPDATE Accounts SET credits_remaining = credits_remaining - :amount
    WHERE account_id = :id AND credits_remaining >= :amount
    RETURNING credits_remaining

so two concurrent requests can never both pass the balance check against the
same stale read. On PostgreSQL the row lock taken by the UPDATE makes the
second writer re-evaluate the predicate; on SQLite the write transaction is
opened with ``BEGIN IMMEDIATE``.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import BillingSettings, TierAllowance
from ..db.connection import DatabaseConnection
from ..db.models import (
    CREDIT_ACTIONS,
    Account,
    UsageAction,
    UsageRecord,
    generate_uuid,
    utc_now,
)
from ..errors import InsufficientFundsError, NotFoundError, ValidationError
from ..logging.config import get_logger
from .billing_cycle import current_cycle_start, is_cycle_due, next_reset, to_naive_utc

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class LedgerEntry:
    """Outcome of a successful deduct or refund."""

    remaining: Decimal | int
    usage_id: UUID


@dataclass
class Balance:
    """Snapshot of an account's allowances for the current cycle."""

    account_id: UUID
    tier: str
    credits_remaining: Decimal
    credits_allowance: Decimal
    credits_used: Decimal
    credits_reset_at: datetime
    sentiment_remaining: int
    sentiment_allowance: int
    sentiment_used: int
    sentiment_reset_at: datetime


@dataclass
class UsagePage:
    """One page of ledger rows, newest first."""

    records: list[UsageRecord]
    total: int
    page: int
    limit: int


@dataclass
class RolloverResult:
    """Summary of a billing cycle rollover sweep."""

    accounts_checked: int = 0
    accounts_reset: int = 0
    failures: list[str] = field(default_factory=list)


class QuotaStore:
    """Atomic deduct/refund primitives over the account balances."""

    def __init__(
        self,
        db: DatabaseConnection,
        billing: BillingSettings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db = db
        self.billing = billing
        self._clock = clock

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def create_account(
        self,
        tier: str | None = None,
        account_id: UUID | None = None,
    ) -> Account:
        """Open an account with the tier's allowances and both anchors at now."""
        tier = tier or self.billing.default_tier
        if tier not in self.billing.tiers:
            raise ValidationError(f"Unknown tier: {tier}")

        allowance = self.billing.allowance_for(tier)
        now = self._clock()
        account = Account(
            account_id=account_id or generate_uuid(),
            tier=tier,
            credits_remaining=allowance.credits,
            credits_cycle_anchor=now,
            sentiment_quota_remaining=allowance.sentiment_quota,
            sentiment_cycle_anchor=now,
        )
        async with self.db.session() as session:
            session.add(account)

        logger.info(
            "Account created",
            account_id=str(account.account_id),
            tier=tier,
            credits=str(allowance.credits),
            sentiment_quota=allowance.sentiment_quota,
        )
        return account

    async def get_account(self, account_id: UUID) -> Account:
        async with self.db.session() as session:
            account = await session.get(Account, account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    # ------------------------------------------------------------------
    # Credits
    # ------------------------------------------------------------------

    async def ensure_credits(self, account_id: UUID, amount: Decimal) -> None:
        """Advisory pre-check before doing expensive work.

        This read does not reserve anything; ``deduct`` re-checks atomically.
        """
        account = await self.get_account(account_id)
        if account.credits_remaining < amount:
            raise InsufficientFundsError(
                remaining=account.credits_remaining,
                required=amount,
                next_reset_at=self._next_reset(account.credits_cycle_anchor),
            )

    async def deduct(
        self,
        account_id: UUID,
        amount: Decimal,
        action: UsageAction,
        review_id: UUID | None = None,
        response_id: UUID | None = None,
        detail: dict[str, Any] | None = None,
    ) -> LedgerEntry:
        """Consume ``amount`` credits and append the matching ledger row.

        Raises:
            ValidationError: If amount is not positive.
            NotFoundError: If the account does not exist.
            InsufficientFundsError: If the balance is below ``amount``;
                nothing is written in that case.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError("Deduction amount must be positive")

        async with self.db.session() as session:
            result = await session.execute(
                update(Account)
                .where(
                    Account.account_id == account_id,
                    Account.credits_remaining >= amount,
                )
                .values(credits_remaining=Account.credits_remaining - amount)
                .returning(Account.credits_remaining)
                .execution_options(synchronize_session=False)
            )
            remaining = result.scalar_one_or_none()
            if remaining is None:
                raise await self._insufficient_credits(session, account_id, amount)

            usage_id = self._append(
                session,
                account_id=account_id,
                quantity=amount,
                action=action,
                review_id=review_id,
                response_id=response_id,
                detail=detail,
            )

        logger.info(
            "Credits deducted",
            account_id=str(account_id),
            action=action.value,
            amount=str(amount),
            remaining=str(remaining),
            usage_id=str(usage_id),
        )
        return LedgerEntry(remaining=remaining, usage_id=usage_id)

    async def refund(
        self,
        account_id: UUID,
        amount: Decimal,
        review_id: UUID | None = None,
        response_id: UUID | None = None,
        detail: dict[str, Any] | None = None,
    ) -> LedgerEntry:
        """Return ``amount`` credits and append a negative ledger row."""
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError("Refund amount must be positive")

        async with self.db.session() as session:
            result = await session.execute(
                update(Account)
                .where(Account.account_id == account_id)
                .values(credits_remaining=Account.credits_remaining + amount)
                .returning(Account.credits_remaining)
                .execution_options(synchronize_session=False)
            )
            remaining = result.scalar_one_or_none()
            if remaining is None:
                raise NotFoundError(f"Account {account_id} not found")

            usage_id = self._append(
                session,
                account_id=account_id,
                quantity=-amount,
                action=UsageAction.REFUND,
                review_id=review_id,
                response_id=response_id,
                detail=detail,
            )

        logger.info(
            "Credits refunded",
            account_id=str(account_id),
            amount=str(amount),
            remaining=str(remaining),
            usage_id=str(usage_id),
        )
        return LedgerEntry(remaining=remaining, usage_id=usage_id)

    async def attach_response(
        self,
        session: AsyncSession,
        usage_id: UUID,
        response_id: UUID,
    ) -> None:
        """Link a generate row to the Response it paid for.

        Runs inside the caller's transaction so the link commits together
        with the Response insert.
        """
        await session.execute(
            update(UsageRecord)
            .where(UsageRecord.usage_id == usage_id)
            .values(response_id=response_id)
            .execution_options(synchronize_session=False)
        )

    # ------------------------------------------------------------------
    # Sentiment quota
    # ------------------------------------------------------------------

    async def deduct_sentiment(
        self,
        account_id: UUID,
        review_id: UUID | None = None,
        detail: dict[str, Any] | None = None,
        amount: int = 1,
    ) -> LedgerEntry:
        """Consume sentiment quota units. Sentiment is never refunded."""
        if amount <= 0:
            raise ValidationError("Deduction amount must be positive")

        async with self.db.session() as session:
            result = await session.execute(
                update(Account)
                .where(
                    Account.account_id == account_id,
                    Account.sentiment_quota_remaining >= amount,
                )
                .values(
                    sentiment_quota_remaining=Account.sentiment_quota_remaining - amount
                )
                .returning(Account.sentiment_quota_remaining)
                .execution_options(synchronize_session=False)
            )
            remaining = result.scalar_one_or_none()
            if remaining is None:
                account = await session.get(Account, account_id)
                if account is None:
                    raise NotFoundError(f"Account {account_id} not found")
                raise InsufficientFundsError(
                    remaining=account.sentiment_quota_remaining,
                    required=amount,
                    next_reset_at=self._next_reset(account.sentiment_cycle_anchor),
                    quota="sentiment",
                )

            usage_id = self._append(
                session,
                account_id=account_id,
                quantity=Decimal(amount),
                action=UsageAction.SENTIMENT_ANALYSIS,
                review_id=review_id,
                detail=detail,
            )

        logger.debug(
            "Sentiment quota deducted",
            account_id=str(account_id),
            remaining=remaining,
        )
        return LedgerEntry(remaining=remaining, usage_id=usage_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_balance(self, account_id: UUID) -> Balance:
        """Current balances, allowances and next reset dates."""
        account = await self.get_account(account_id)
        allowance = self.billing.allowance_for(account.tier)

        return Balance(
            account_id=account.account_id,
            tier=account.tier,
            credits_remaining=account.credits_remaining,
            credits_allowance=allowance.credits,
            credits_used=max(allowance.credits - account.credits_remaining, Decimal("0")),
            credits_reset_at=self._next_reset(account.credits_cycle_anchor),
            sentiment_remaining=account.sentiment_quota_remaining,
            sentiment_allowance=allowance.sentiment_quota,
            sentiment_used=max(
                allowance.sentiment_quota - account.sentiment_quota_remaining, 0
            ),
            sentiment_reset_at=self._next_reset(account.sentiment_cycle_anchor),
        )

    async def list_usage(
        self,
        account_id: UUID,
        page: int = 1,
        limit: int = 20,
        action: UsageAction | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> UsagePage:
        """Page through an account's ledger, newest first."""
        page = max(page, 1)
        limit = max(1, min(limit, MAX_PAGE_SIZE))

        filters = [UsageRecord.account_id == account_id]
        if action is not None:
            filters.append(UsageRecord.action == action.value)
        if start is not None:
            filters.append(UsageRecord.created_at >= to_naive_utc(start))
        if end is not None:
            filters.append(UsageRecord.created_at <= to_naive_utc(end))

        async with self.db.session() as session:
            total_result = await session.execute(
                select(func.count(UsageRecord.usage_id)).where(*filters)
            )
            total = total_result.scalar() or 0

            rows = await session.execute(
                select(UsageRecord)
                .where(*filters)
                .order_by(UsageRecord.created_at.desc(), UsageRecord.usage_id)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            records = list(rows.scalars().all())

        return UsagePage(records=records, total=total, page=page, limit=limit)

    async def current_cycle_usage(self, account_id: UUID) -> Decimal:
        """Signed sum of credit movements since the credits cycle anchor.

        For a consistent ledger this equals ``allowance - credits_remaining``.
        """
        async with self.db.session() as session:
            account = await session.get(Account, account_id)
            if account is None:
                raise NotFoundError(f"Account {account_id} not found")

            total = await self._usage_since(
                session, account_id, CREDIT_ACTIONS, account.credits_cycle_anchor
            )

        return total.quantize(Decimal("0.01"))

    # ------------------------------------------------------------------
    # Rollover
    # ------------------------------------------------------------------

    async def rollover_due_accounts(self, now: datetime | None = None) -> RolloverResult:
        """Reset every account whose credits cycle has ended.

        Both anchors move to the most recent cycle boundary not after ``now``,
        which is the same boundary ``next_reset`` reported before the sweep.
        Each counter goes back to the tier allowance minus whatever the ledger
        already recorded since that boundary, so usage between the boundary
        and the sweep stays charged. Each account is reset in its own
        transaction; failures are collected, not raised.
        """
        now = to_naive_utc(now) if now is not None else self._clock()
        cycle_days = self.billing.cycle_length_days
        # Anchors are compared at midnight granularity, so widen by a day
        # and let is_cycle_due() make the exact decision.
        threshold = now - timedelta(days=cycle_days - 1)

        result = RolloverResult()
        async with self.db.session() as session:
            rows = await session.execute(
                select(Account.account_id).where(
                    or_(
                        Account.credits_cycle_anchor < threshold,
                        Account.sentiment_cycle_anchor < threshold,
                    )
                )
            )
            candidate_ids = [row[0] for row in rows.fetchall()]

        for account_id in candidate_ids:
            result.accounts_checked += 1
            try:
                if await self._rollover_account(account_id, now):
                    result.accounts_reset += 1
            except SQLAlchemyError as e:
                logger.exception(
                    "Billing rollover failed",
                    account_id=str(account_id),
                    error=str(e),
                )
                result.failures.append(f"{account_id}: {e}")

        logger.info(
            "Billing rollover completed",
            accounts_checked=result.accounts_checked,
            accounts_reset=result.accounts_reset,
            failures=len(result.failures),
        )
        return result

    async def _rollover_account(self, account_id: UUID, now: datetime) -> bool:
        cycle_days = self.billing.cycle_length_days

        async with self.db.session() as session:
            row = await session.execute(
                select(Account).where(Account.account_id == account_id).with_for_update()
            )
            account = row.scalar_one_or_none()
            if account is None:
                return False

            credits_due = is_cycle_due(account.credits_cycle_anchor, cycle_days, now)
            sentiment_due = is_cycle_due(account.sentiment_cycle_anchor, cycle_days, now)
            if not (credits_due or sentiment_due):
                return False

            allowance: TierAllowance = self.billing.allowance_for(account.tier)
            previous_credits = account.credits_remaining

            if credits_due:
                anchor = to_naive_utc(
                    current_cycle_start(account.credits_cycle_anchor, cycle_days, now)
                )
                used = await self._usage_since(session, account_id, CREDIT_ACTIONS, anchor)
                account.credits_remaining = max(Decimal(allowance.credits) - used, Decimal("0"))
                account.credits_cycle_anchor = anchor
            if sentiment_due:
                anchor = to_naive_utc(
                    current_cycle_start(account.sentiment_cycle_anchor, cycle_days, now)
                )
                used = await self._usage_since(
                    session, account_id, (UsageAction.SENTIMENT_ANALYSIS.value,), anchor
                )
                account.sentiment_quota_remaining = max(allowance.sentiment_quota - int(used), 0)
                account.sentiment_cycle_anchor = anchor

        logger.info(
            "Billing cycle rolled over",
            account_id=str(account_id),
            tier=account.tier,
            previous_credits=str(previous_credits),
            credits=str(account.credits_remaining),
            sentiment_quota=account.sentiment_quota_remaining,
            credits_anchor=account.credits_cycle_anchor.isoformat(),
        )
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append(
        self,
        session: AsyncSession,
        account_id: UUID,
        quantity: Decimal,
        action: UsageAction,
        review_id: UUID | None = None,
        response_id: UUID | None = None,
        detail: dict[str, Any] | None = None,
    ) -> UUID:
        usage_id = generate_uuid()
        session.add(
            UsageRecord(
                usage_id=usage_id,
                account_id=account_id,
                quantity=quantity,
                action=action.value,
                review_id=review_id,
                response_id=response_id,
                details_json=json.dumps(detail, default=str) if detail else None,
                created_at=self._clock(),
            )
        )
        return usage_id

    async def _usage_since(
        self,
        session: AsyncSession,
        account_id: UUID,
        actions: tuple[str, ...],
        since: datetime,
    ) -> Decimal:
        """Signed sum of ledger rows of ``actions`` created at or after ``since``."""
        result = await session.execute(
            select(func.coalesce(func.sum(UsageRecord.quantity), 0)).where(
                UsageRecord.account_id == account_id,
                UsageRecord.action.in_(actions),
                UsageRecord.created_at >= since,
            )
        )
        return Decimal(str(result.scalar()))

    def _next_reset(self, anchor: datetime) -> datetime:
        return next_reset(anchor, self.billing.cycle_length_days, self._clock())

    async def _insufficient_credits(
        self,
        session: AsyncSession,
        account_id: UUID,
        amount: Decimal,
    ) -> Exception:
        account = await session.get(Account, account_id)
        if account is None:
            return NotFoundError(f"Account {account_id} not found")

        logger.info(
            "Insufficient credits",
            account_id=str(account_id),
            required=str(amount),
            remaining=str(account.credits_remaining),
        )
        return InsufficientFundsError(
            remaining=account.credits_remaining,
            required=amount,
            next_reset_at=self._next_reset(account.credits_cycle_anchor),
        )
