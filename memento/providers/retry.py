"""Retry with exponential backoff for provider calls.

Only errors whose type is marked ``retryable`` (rate limits, transient
server failures) are retried; authentication and other fatal errors
propagate on the first attempt.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from memento.errors import MementoError, RateLimitError
from memento.observability.logging import get_logger

if TYPE_CHECKING:
    from memento.config.models.providers import RetryConfig

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Backoff parameters. Delays are in seconds."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True

    @classmethod
    def from_config(cls, config: "RetryConfig") -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            initial_delay=config.initial_delay,
            max_delay=config.max_delay,
            backoff_multiplier=config.backoff_multiplier,
            jitter=config.jitter,
        )


NO_RETRY = RetryPolicy(max_attempts=1)


def calculate_delay(attempt: int, policy: RetryPolicy) -> float:
    """Delay before the retry following 0-based ``attempt``."""
    delay = min(
        policy.initial_delay * (policy.backoff_multiplier**attempt),
        policy.max_delay,
    )
    if policy.jitter:
        delay *= 0.75 + random.random() * 0.5
    return delay


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    operation_name: str = "provider_call",
) -> T:
    """Await ``operation`` until it succeeds or a non-retryable error occurs.

    Raises:
        The last error raised by ``operation``
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except MementoError as e:
            attempt += 1
            if not e.retryable or attempt >= policy.max_attempts:
                raise

            delay = calculate_delay(attempt - 1, policy)
            if isinstance(e, RateLimitError) and e.retry_after is not None:
                delay = min(max(delay, e.retry_after), policy.max_delay)

            logger.warning(
                "provider_call_retry",
                operation=operation_name,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                error_type=type(e).__name__,
                delay=round(delay, 3),
            )
            await asyncio.sleep(delay)
