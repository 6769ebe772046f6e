"""
Retry utilities for rate-limit and overload errors from the completion service.

Only the chat agent loop retries; the analysis pipeline never does.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

# 429 rate limited, 503 unavailable, 529 overloaded (Anthropic)
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 503, 529})
_RETRYABLE_MARKERS = ("rate limit", "rate_limit", "overloaded", "too many requests")
_RETRY_AFTER = re.compile(r"try again in (\d+(?:\.\d+)?)\s*s", re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """True for rate-limit and overload failures, by status code or message."""
    status = getattr(exc, "status_code", None)
    if isinstance(status, int) and status in RETRYABLE_STATUS_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


async def run_with_retry(
    func: Callable[[], Awaitable[Any]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
) -> Any:
    """
    Await func(), retrying retryable errors with exponential backoff.

    Args:
        func: Zero-argument coroutine factory
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        backoff_factor: Multiplier applied to the delay after each retry

    Raises:
        The last error once retries run out, or any non-retryable error at once
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not is_retryable_error(e) or attempt >= max_retries:
                raise
            hint = _RETRY_AFTER.search(str(e))
            wait_time = float(hint.group(1)) if hint else initial_delay * (backoff_factor**attempt)
            attempt += 1
            logger.warning(
                f"Completion service busy ({e}). Attempt {attempt}/{max_retries}, "
                f"retrying in {wait_time:.1f}s"
            )
            await asyncio.sleep(wait_time)
