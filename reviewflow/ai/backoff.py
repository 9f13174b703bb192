"""Bounded exponential backoff for provider calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..logging.config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


def _never(exc: BaseException) -> bool:
    return False


@dataclass
class BackoffPolicy:
    """Retry policy: attempt budget, doubling delay and a retryable predicate.

    ``sleep`` is injectable so tests can record the schedule instead of
    waiting. With the defaults the delays between attempts are 1s then 2s.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    is_retryable: Callable[[BaseException], bool] = _never
    sleep: Sleeper = field(default=asyncio.sleep)

    def delays(self) -> list[float]:
        """The delays that would be slept if every attempt failed transiently."""
        return [
            min(self.base_delay * 2**attempt, self.max_delay)
            for attempt in range(self.max_attempts - 1)
        ]

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, max=self.max_delay),
            retry=retry_if_exception(self.is_retryable),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` until it succeeds or the policy gives up.

        The last exception is re-raised unchanged when attempts run out or
        the error is not retryable.
        """
        async for attempt in self._retrying():
            with attempt:
                return await operation()
        raise AssertionError("unreachable")  # pragma: no cover

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Transient provider error, retrying",
            attempt=retry_state.attempt_number,
            delay=retry_state.next_action.sleep if retry_state.next_action else None,
            error_type=type(exc).__name__ if exc else None,
            error=str(exc) if exc else None,
        )
