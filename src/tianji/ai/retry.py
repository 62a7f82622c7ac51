"""Retry wrapper for Gemini calls.

Despite the name, the delay between attempts is constant. Rate-limit errors
are never retried; they are translated into ``ServiceBusyError`` right away.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tianji.errors import ServiceBusyError, TianjiError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 2
RETRY_DELAY = 2.0  # seconds

RATE_LIMIT_MARKERS = ("429", "finish what you were doing")


def is_rate_limited(error: BaseException) -> bool:
    """Check whether an error signals a quota/rate-limit rejection."""
    for attr in ("status", "code", "status_code"):
        if getattr(error, attr, None) == 429:
            return True
    message = str(error)
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    retries: int = DEFAULT_RETRIES,
    delay: float = RETRY_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` with up to ``retries`` extra attempts.

    Args:
        operation: Zero-argument callable returning an awaitable
        retries: Extra attempts after the first failure
        delay: Fixed pause before each retry, in seconds
        sleep: Awaitable sleep function

    Returns:
        The operation's result

    Raises:
        ServiceBusyError: On a rate-limit error, without retrying
        Exception: The last error once the budget is spent
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            if isinstance(e, TianjiError) and not e.retryable:
                raise
            if is_rate_limited(e):
                logger.warning(f"Rate limited on attempt {attempt}: {e}")
                raise ServiceBusyError(detail={"cause": str(e)}) from e
            if retries <= 0:
                logger.error(f"All retries exhausted after {attempt} attempts: {e}")
                raise
            logger.warning(f"Attempt {attempt} failed ({e}), retrying in {delay}s")
            await sleep(delay)
            retries -= 1
            attempt += 1
