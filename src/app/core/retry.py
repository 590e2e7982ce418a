"""Bounded retry with exponential backoff.

One wrapper is shared by every outbound call that must eventually land
(ledger reads and writes, notifications). Delays double per attempt and are
capped.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from app.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry parameters.

    Attributes:
        max_attempts: Total attempts, including the first one
        base_delay: Delay before the second attempt (seconds)
        max_delay: Upper bound for any single delay (seconds)
    """

    max_attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 8.0

    def delay_for(self, retry_number: int) -> float:
        """Delay before retry number ``retry_number`` (0-based)."""
        return min(self.base_delay * (2**retry_number), self.max_delay)

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.ledger_max_attempts,
            base_delay=settings.ledger_base_delay_seconds,
            max_delay=settings.ledger_max_delay_seconds,
        )


class RetryError(Exception):
    """Raised when every attempt failed. Wraps the last exception."""

    def __init__(self, description: str, attempts: int, last_error: BaseException):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{description} failed after {attempts} attempts: {last_error}")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "operation",
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or attempts are exhausted.

    Args:
        operation: Zero-argument coroutine factory (called once per attempt)
        policy: Attempt count and delay bounds
        description: Label used in log lines and the final error
        retry_on: Exception types that trigger another attempt
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The first successful result.

    Raises:
        RetryError: After ``policy.max_attempts`` failed attempts.
    """
    attempts = max(policy.max_attempts, 1)
    last_error: BaseException | None = None

    for attempt in range(attempts):
        if attempt > 0:
            delay = policy.delay_for(attempt - 1)
            logger.info(
                f"Retrying {description}",
                extra={"attempt": attempt + 1, "delay_seconds": delay},
            )
            await sleep(delay)

        try:
            result = await operation()
        except retry_on as exc:
            last_error = exc
            logger.warning(
                f"{description} attempt failed",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": attempts,
                    "error_type": type(exc).__name__,
                },
            )
            continue

        if attempt > 0:
            logger.info(f"{description} succeeded after retry", extra={"attempts": attempt + 1})
        return result

    logger.error(f"{description} failed after all retries", extra={"attempts": attempts})
    raise RetryError(description, attempts, last_error)
