"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Retry logic utilities for MrCloud Core.

Provides bounded exponential backoff for coroutines that fail transiently.
Only the exception types named as transient are retried; everything else
propagates on the first occurrence.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from mrcloud.exceptions import TransportError
from mrcloud.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


@dataclass
class RetryPolicy:
    """
    Bounded exponential backoff.

    Attributes:
        max_attempts: Total attempts including the first one (default: 5)
        base_delay: Delay in seconds before the second attempt (default: 0.5)
        backoff_factor: Multiplier applied to the delay after each retry (default: 2.0)
        transient_exceptions: Exception types that are retried
    """
    max_attempts: int = 5
    base_delay: float = 0.5
    backoff_factor: float = 2.0
    transient_exceptions: Tuple[Type[BaseException], ...] = (TransportError,)

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed ``attempt`` (1-based)."""
        return self.base_delay * (self.backoff_factor ** (attempt - 1))


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    policy: Optional[RetryPolicy] = None,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Await ``operation`` with retries on transient failures.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        operation_name: Name of the operation for logging
        policy: Retry policy (default: RetryPolicy())
        on_retry: Called with ``(attempt, exception)`` before each backoff
        sleep: Awaitable sleep function

    Returns:
        Result of the first successful attempt

    Raises:
        Exception: The last transient exception once attempts are exhausted,
            or the first non-transient exception

    Example:
        listing = await retry_async(
            lambda: session.list_folder("/"),
            "list_folder",
            RetryPolicy(max_attempts=3),
        )
    """
    policy = policy or RetryPolicy()
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except policy.transient_exceptions as e:
            if attempt >= policy.max_attempts:
                logger.error(
                    f"Permanent failure in {operation_name} after {attempt} attempts: {e}",
                    operation=operation_name,
                    total_attempts=attempt,
                    exception_type=type(e).__name__,
                )
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                f"Transient failure in {operation_name} "
                f"(attempt {attempt}/{policy.max_attempts}): {e}. "
                f"Retrying in {delay:.2f}s...",
                operation=operation_name,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=delay,
                exception_type=type(e).__name__,
            )
            if on_retry is not None:
                on_retry(attempt, e)
            await sleep(delay)

