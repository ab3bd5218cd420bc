"""Bounded retry with exponential backoff for provider calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = 1,
    delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation``, retrying transient failures.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        retries: Additional attempts after the first (1 means 2 calls total)
        delay: Delay before the first retry, doubled on each later one
        sleep: Awaitable delay function; the backoff never blocks the loop

    Returns:
        The operation's result

    Raises:
        The last exception once retries are exhausted, or the first
        non-retryable exception immediately
    """
    remaining = retries
    wait = delay
    while True:
        try:
            return await operation()
        except Exception as exc:  # noqa: BLE001
            if remaining <= 0 or not is_retryable(exc):
                raise
            logger.warning(
                f"API call failed, retrying... ({remaining} attempts left)",
                extra={"error": str(exc), "delay_seconds": wait},
            )
            await sleep(wait)
            remaining -= 1
            wait *= 2
