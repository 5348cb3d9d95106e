"""Deduplicate concurrent identical fetches keyed by query."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


class SingleFlight:
    """Concurrent ``do`` calls for the same key await one shared underlying call.

    The key stays registered until the shared call itself finishes, even when
    the caller that started it is cancelled.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    def _forget(self, key: str, future: asyncio.Future[Any]) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        existing = self._inflight.get(key)
        if existing is not None:
            return await asyncio.shield(existing)

        future: asyncio.Future[T] = asyncio.ensure_future(fn())
        self._inflight[key] = future
        future.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(future)


__all__ = ["SingleFlight"]
