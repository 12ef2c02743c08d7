"""
Deadline utilities for bounded polling loops.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Optional


@dataclass
class Deadline:
    """
    Absolute deadline captured at the start of a wait.

    Every sub-wait asks the deadline for its remaining budget so that no
    single check can overrun the overall timeout.

    Attributes:
        timeout_ms: Total budget in milliseconds
        started_at: Monotonic start time in seconds
    """
    timeout_ms: int
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the deadline was captured."""
        return (time.monotonic() - self.started_at) * 1000

    @property
    def remaining_ms(self) -> float:
        """Milliseconds left before expiry (never negative)."""
        return max(0.0, self.timeout_ms - self.elapsed_ms)

    @property
    def expired(self) -> bool:
        return self.remaining_ms <= 0

    def cap(self, budget_ms: Optional[float] = None) -> int:
        """
        Cap a sub-wait budget to the remaining time.

        Args:
            budget_ms: Desired budget, or None for "whatever is left"

        Returns:
            Budget in whole milliseconds, at least 1 so backends never
            receive 0 (which Playwright treats as "no timeout")
        """
        remaining = self.remaining_ms
        if budget_ms is not None:
            remaining = min(remaining, budget_ms)
        return max(1, int(remaining))

    async def sleep(self, interval_ms: float) -> None:
        """Sleep for min(interval_ms, remaining) milliseconds."""
        delay = min(interval_ms, self.remaining_ms)
        if delay > 0:
            await asyncio.sleep(delay / 1000)


async def with_soft_timeout(
    awaitable: Awaitable[Any],
    timeout_ms: float,
) -> Any:
    """
    Await with a ceiling, returning None instead of raising on timeout.

    Args:
        awaitable: Coroutine to execute
        timeout_ms: Ceiling in milliseconds

    Returns:
        The awaited result, or None if the ceiling was reached
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=max(timeout_ms, 0) / 1000)
    except asyncio.TimeoutError:
        return None
