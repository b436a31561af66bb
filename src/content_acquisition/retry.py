"""Retry policy: which failures are worth repeating, and how long to wait."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from content_acquisition.errors import HTTPStatusError, TransientNetworkError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def is_retryable_status(status_code: int) -> bool:
    """5xx and 429 are transient; every other status is final."""
    return status_code == 429 or 500 <= status_code < 600


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, TransientNetworkError):
        return True
    if isinstance(exc, HTTPStatusError):
        return is_retryable_status(exc.status_code)
    return False


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before retry number ``attempt`` (1-indexed). Grows linearly."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return attempt * base_delay


def _log_retry(label: str, retries: int) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.warning(
            "Retry %d/%d for %s in %.1fs (%s)",
            state.attempt_number, retries, label, delay, exc,
        )

    return before_sleep


def retrying(
    retries: int,
    base_delay: float,
    *,
    sleep: Sleep = asyncio.sleep,
    label: str = "request",
) -> AsyncRetrying:
    """
    Build the retry loop for one operation call.

    At most ``retries + 1`` attempts are made. Retry n waits
    ``backoff_delay(n, base_delay)``. Once the budget is spent the last
    exception is re-raised for the caller to turn into a result.
    """
    if retries < 0:
        raise ValueError(f"retries must be >= 0, got {retries}")
    return AsyncRetrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        retry=retry_if_exception(is_retryable),
        sleep=sleep,
        before_sleep=_log_retry(label, retries),
        reraise=True,
    )
