"""
Reliability utilities: retry with fixed backoff schedules.

Every upstream service publishes its own backoff schedule in
``core.config`` (for example Reddit waits 2s, 4s, 8s, 16s, 32s). The helper
here replays that schedule for retryable failures and re-raises the last
error once it is exhausted, so callers decide how to degrade.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, Sequence

from core.errors import is_retryable_error

__all__ = [
    "resilient_api_call",
]

logger = logging.getLogger(__name__)


async def resilient_api_call(
    func: Callable[..., Awaitable[Any]],
    *args,
    delays: Sequence[float] = (2.0, 4.0, 8.0),
    retry_if: Callable[[BaseException], bool] = is_retryable_error,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
    jitter: float = 0.0,
    **kwargs,
) -> Any:
    """
    Execute an async function, retrying retryable failures.

    Args:
        func: Async function to call
        *args: Positional arguments
        delays: Seconds to wait before each retry; its length is the retry count
        retry_if: Predicate deciding whether an exception is worth retrying
        on_retry: Callback invoked with (attempt, exception) before sleeping
        jitter: Fraction of the delay added as random jitter
        **kwargs: Keyword arguments

    Returns:
        Result from func

    Raises:
        The last exception raised by func when retries are exhausted or the
        error is not retryable.
    """
    attempt = 0
    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if attempt >= len(delays) or not retry_if(e):
                raise

            delay = delays[attempt]
            if jitter:
                delay += random.uniform(0, jitter * delay)
            attempt += 1

            if on_retry:
                on_retry(attempt, e)
            logger.warning(
                f"Retry {attempt}/{len(delays)}: {type(e).__name__}. "
                f"Waiting {delay:.1f}s..."
            )
            await asyncio.sleep(delay)
