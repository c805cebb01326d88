"""
Bounded retry with capped exponential backoff.

Shared by the outbound transport (retries connection-level failures only,
never HTTP error statuses) and the webhook job runner (retries processing
failures and per-attempt timeouts). Anything not listed in ``retry_on``
propagates immediately.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger("pix_gateway.retry")

T = TypeVar("T")

BASE_DELAY = 0.5
MAX_DELAY = 30.0


def backoff_delay(attempt: int, base_delay: float = BASE_DELAY, max_delay: float = MAX_DELAY) -> float:
    """Delay before retry number ``attempt`` (0-based): base * 2^attempt, capped."""
    return min(base_delay * (2 ** attempt), max_delay)


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    retry_on: tuple[type[BaseException], ...],
    max_retries: int,
    base_delay: float = BASE_DELAY,
    max_delay: float = MAX_DELAY,
    label: str = "call",
    **kwargs: Any,
) -> T:
    """
    Execute an async callable, retrying on the given exception types.

    Args:
        func: Async callable to execute.
        retry_on: Exception types that trigger another attempt.
        max_retries: Retries after the first attempt (total attempts = max_retries + 1).
        base_delay: First backoff delay in seconds.
        max_delay: Upper bound for any single backoff delay.
        label: Short description used in log lines.

    Returns:
        The result of the function call.

    Raises:
        The last retriable exception once retries are exhausted, or any
        non-retriable exception as soon as it occurs.
    """
    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if attempt >= max_retries:
                logger.error("Exhausted %d retries for %s: %r", max_retries, label, e)
                raise

            sleep_for = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "Retriable error on %s attempt %d/%d: %r - sleeping %.2fs",
                label,
                attempt + 1,
                max_retries + 1,
                e,
                sleep_for,
            )
            await asyncio.sleep(sleep_for)

    raise RuntimeError(f"with_retry for {label} ran with max_retries={max_retries}")
