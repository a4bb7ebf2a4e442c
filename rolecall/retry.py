"""Bounded retry with linearly increasing backoff."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import is_transient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryController:
    """Re-run a coroutine factory on transient network failures.

    Attempt 1 runs immediately; attempt ``k`` waits ``k * backoff_step``
    seconds first. Only failures classified by :func:`is_transient` are
    retried. Cancellation is never retried and propagates as-is.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_step: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_step = backoff_step
        self._sleep = sleep

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before ``attempt`` (1-based)."""
        if attempt <= 1:
            return 0.0
        return attempt * self.backoff_step

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        description: str = "operation",
    ) -> T:
        attempts = self.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            if attempt > 1:
                delay = self.delay_before(attempt)
                logger.info(f"Retrying {description} in {delay:g}s (attempt {attempt}/{attempts})")
                await self._sleep(delay)
            try:
                return await operation()
            except Exception as e:
                if not is_transient(e):
                    raise
                last_error = e
                logger.warning(f"Network error on attempt {attempt}/{attempts} for {description}: {e}")

        assert last_error is not None
        raise last_error
