"""Exponential backoff around fallible async operations."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from docreview.config.settings import Settings
from docreview.logging.logger import Log

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_RETRIES = 5
DEFAULT_INITIAL_DELAY_SECONDS = 1.0


class RetryController:
    """Runs an async operation, retrying failures with doubling delays.

    The delay before retry ``i`` (0-indexed) is ``initial_delay * 2**i``.
    There is no jitter and no cap; the retry budget is the only bound.
    Every exception is treated the same way. When the budget is spent the
    last exception propagates unchanged.
    """

    def __init__(
        self,
        retries: int = DEFAULT_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY_SECONDS,
        sleep: SleepFn | None = None,
    ) -> None:
        if retries < 0:
            raise ValueError(f"retries must be >= 0, got {retries}")
        if initial_delay < 0:
            raise ValueError(f"initial_delay must be >= 0, got {initial_delay}")
        self._retries = retries
        self._initial_delay = initial_delay
        self._sleep = sleep if sleep is not None else asyncio.sleep

    @classmethod
    def from_settings(cls, settings: Settings, sleep: SleepFn | None = None) -> "RetryController":
        return cls(
            retries=settings.retry_max_retries,
            initial_delay=settings.retry_initial_delay_seconds,
            sleep=sleep,
        )

    @property
    def retries(self) -> int:
        return self._retries

    @property
    def initial_delay(self) -> float:
        return self._initial_delay

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` until it succeeds or the retry budget runs out."""
        remaining = self._retries
        delay = self._initial_delay
        while True:
            try:
                return await operation()
            except Exception as exc:
                if remaining <= 0:
                    raise
                Log.warning(
                    f"Attempt failed ({exc}); retrying in {delay:g}s "
                    f"({remaining} retries left)"
                )
                await self._sleep(delay)
                delay *= 2
                remaining -= 1
