"""Bounded retry helpers for asynchronous operations."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Generic, TypeVar

from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0


@dataclass(frozen=True)
class RetryState(Generic[T]):
    data: T | None = None
    is_loading: bool = False
    error: Exception | None = None
    retry_count: int = 0


class RetryableOperation(Generic[T]):
    """User-driven retry wrapper around one logical operation.

    ``execute`` always starts over and re-raises failures so callers can react
    immediately; ``retry`` re-runs after ``retry_delay`` until ``max_retries``
    is reached, at which point it silently does nothing. Exhaustion is a state
    flag (``is_max_retries_reached``), never an exception.

    ``retry_delay`` is either a fixed number of seconds or a callable receiving
    the upcoming retry number (1-based) for growing delays.
    """

    def __init__(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float | Callable[[int], float] = DEFAULT_RETRY_DELAY,
        on_error: Callable[[Exception, int], None] | None = None,
        on_success: Callable[[], None] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._operation = operation
        self.max_retries = max_retries
        self._retry_delay = retry_delay
        self._on_error = on_error
        self._on_success = on_success
        self._sleep = sleep
        self._state: RetryState[T] = RetryState()

    @property
    def state(self) -> RetryState[T]:
        return self._state

    @property
    def can_retry(self) -> bool:
        return self._state.retry_count < self.max_retries and self._state.error is not None

    @property
    def is_max_retries_reached(self) -> bool:
        return self._state.retry_count >= self.max_retries

    def _delay_for(self, attempt: int) -> float:
        if callable(self._retry_delay):
            return float(self._retry_delay(attempt))
        return float(self._retry_delay)

    async def _run(self, retry_count: int) -> T:
        self._state = replace(self._state, is_loading=True, error=None, retry_count=retry_count)
        try:
            result = await self._operation()
        except Exception as exc:
            self._state = replace(self._state, is_loading=False, error=exc)
            if self._on_error is not None:
                self._on_error(exc, retry_count)
            raise

        self._state = replace(self._state, data=result, is_loading=False, error=None)
        if self._on_success is not None:
            self._on_success()
        return result

    async def execute(self) -> T:
        return await self._run(0)

    async def retry(self) -> T | None:
        if self._state.retry_count >= self.max_retries:
            return None

        attempt = self._state.retry_count + 1
        delay = self._delay_for(attempt)
        if delay > 0:
            await self._sleep(delay)
        return await self._run(attempt)

    def reset(self) -> None:
        self._state = RetryState()


async def call_with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 8.0,
) -> T:
    """Run ``fn`` with exponential backoff, retrying only ``NetworkError``.

    Meant for idempotent reads; mutations go through ``RetryableOperation`` so
    the user decides when to try again.
    """

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(NetworkError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            return await fn()
    raise RuntimeError("unreachable")  # pragma: no cover


__all__ = [
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY",
    "RetryState",
    "RetryableOperation",
    "call_with_backoff",
]
