"""Exponential backoff for outbound calls."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from app.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry settings for `run_with_retry`.

    Delays are in milliseconds. With jitter enabled each computed delay is
    multiplied by a uniform factor in [0.5, 1.5).
    """

    tries: int = 3
    base_delay: float = 250.0
    factor: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Delay in milliseconds to wait after failed attempt number `attempt` (1-based)."""
        wait = self.base_delay * self.factor ** (attempt - 1)
        if self.jitter:
            wait *= 0.5 + random.random()
        return wait


async def run_with_retry(operation: Callable[[], Awaitable[T]], policy: RetryPolicy | None = None) -> T:
    """Run `operation` until it succeeds or the policy's attempts are used up.

    Every exception is retried the same way. When the last attempt fails its
    exception is re-raised unchanged.
    """
    policy = policy or RetryPolicy()
    tries = max(1, policy.tries)

    for attempt in range(1, tries + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt >= tries:
                logger.error(f"Operation failed after {attempt} attempts: {e}")
                raise

            delay_ms = policy.delay_for(attempt)
            logger.warning(f"Attempt {attempt}/{tries} failed ({e}), retrying in {delay_ms:.0f}ms")
            await asyncio.sleep(delay_ms / 1000)

    raise Exception(f"Failed to complete operation after {tries} attempts")
