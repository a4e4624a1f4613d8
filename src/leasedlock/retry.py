"""Bounded polling for blocking acquisition."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")


class RetryScheduler:
    """
    Repeats an attempt until it succeeds or a deadline passes.

    The interval between attempts grows geometrically from
    ``initial_interval`` up to ``max_interval``, and a sleep never runs past
    the deadline.
    """

    def __init__(
        self,
        timeout: float,
        *,
        initial_interval: float = 0.01,
        max_interval: float = 0.1,
        multiplier: float = 2.0,
    ) -> None:
        if timeout < 0:
            raise ValueError("timeout must be >= 0")
        if initial_interval <= 0 or max_interval < initial_interval:
            raise ValueError("need 0 < initial_interval <= max_interval")
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        self.timeout = timeout
        self.initial_interval = initial_interval
        self.max_interval = max_interval
        self.multiplier = multiplier

    async def run(self, attempt: Callable[[], Awaitable[T]]) -> T:
        """
        Call attempt until it returns a truthy value.

        Args:
            attempt: Coroutine function to call. Always called at least once.

        Returns:
            The first truthy result, or the last (falsy) result once the
            deadline has passed.
        """
        deadline = time.monotonic() + self.timeout
        interval = self.initial_interval

        while True:
            result = await attempt()
            if result:
                return result

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return result

            await asyncio.sleep(min(interval, remaining))
            interval = min(interval * self.multiplier, self.max_interval)
