"""Exponential-backoff retries for the offline ingestion calls (tenacity)."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from models.errors import PipelineError
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

MAX_RETRIES = 3
RETRY_BASE_DELAY_S = 1.0
RETRYABLE_EXCEPTIONS = (PipelineError, httpx.HTTPError)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Retry attempt {retry_state.attempt_number}",
        extra={
            "extra_fields": {
                "sleep_s": retry_state.next_action.sleep if retry_state.next_action else None,
                "error": str(exc) if exc else None,
            }
        },
    )


def backoff_retrying(
    *, retries: int = MAX_RETRIES, base_delay_s: float = RETRY_BASE_DELAY_S
) -> AsyncRetrying:
    """
    One initial attempt plus ``retries`` retries, sleeping base * 2^n
    between them (1s, 2s, 4s by default). The last error is re-raised.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=base_delay_s, min=0),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        before_sleep=_log_retry,
        reraise=True,
    )


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int = MAX_RETRIES,
    base_delay_s: float = RETRY_BASE_DELAY_S,
) -> T:
    """Await ``fn()`` under the backoff policy and return its result."""
    return await backoff_retrying(retries=retries, base_delay_s=base_delay_s)(fn)
