"""Cache-first / network-first data loading with graceful offline degradation.

One ``ResilientDataLoader`` serves one logical query. It answers "what should
the UI show right now" by combining the offline cache, the connectivity
monitor and the query's fetch function:

* offline: cached data (any age), else fallback data, else ``NoDataError``;
* online with fresh cache: the cache, without touching the network;
* otherwise: the network, degrading to stale cache or fallback data on failure.

Revalidation is lazy. Nothing refreshes in the background except the
resume-on-reconnect reload of a query that is currently showing degraded cache data.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Generic, TypeVar

from ..constants import NO_OFFLINE_DATA_DETAIL, OFFLINE_FALLBACK_DETAIL
from ..errors import NetworkError, NoDataError, StillnestError
from .cache_service import CacheEntry, TTLCache
from .connectivity_service import ConnectivityMonitor, ConnectivityState
from .single_flight import SingleFlight

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_TTL = 5 * 60.0


class DataSource(str, Enum):
    CACHE = "cache"
    NETWORK = "network"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class LoaderState(Generic[T]):
    data: T | None = None
    is_loading: bool = True
    error: Exception | None = None
    is_stale: bool = False
    last_fetched: float | None = None
    source: DataSource = DataSource.CACHE

    @property
    def is_from_cache(self) -> bool:
        return self.source is DataSource.CACHE

    @property
    def is_from_network(self) -> bool:
        return self.source is DataSource.NETWORK

    @property
    def is_from_fallback(self) -> bool:
        return self.source is DataSource.FALLBACK


class ResilientDataLoader(Generic[T]):
    def __init__(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[T]],
        *,
        cache: TTLCache[T],
        monitor: ConnectivityMonitor,
        ttl: float = _DEFAULT_TTL,
        fallback_data: T | None = None,
        on_error: Callable[[Exception], None] | None = None,
        single_flight: SingleFlight | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.key = key
        self.ttl = ttl
        self.fallback_data = fallback_data
        self._fetch_fn = fetch_fn
        self._cache = cache
        self._monitor = monitor
        self._on_error = on_error
        self._single_flight = single_flight
        self._clock = clock
        self._state: LoaderState[T] = LoaderState()
        self._closed = False
        self._pending: set[asyncio.Task[None]] = set()
        self._unsubscribe = monitor.subscribe(self._on_connectivity_change)

    @property
    def state(self) -> LoaderState[T]:
        return self._state

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def can_refresh(self) -> bool:
        return self._monitor.is_online and not self._state.is_loading

    @property
    def closed(self) -> bool:
        return self._closed

    def _commit(self, state: LoaderState[T]) -> None:
        # Late results from a closed loader are dropped.
        if not self._closed:
            self._state = state

    def _is_stale(self, entry: CacheEntry[T] | None) -> bool:
        if entry is None:
            return True
        return self._clock() - entry.stored_at > self.ttl

    async def _fetch_and_store(self) -> T:
        data = await self._fetch_fn()
        self._cache.set(self.key, data)
        return data

    async def _fetch_from_network(self) -> T:
        if self._single_flight is None:
            return await self._fetch_and_store()
        return await self._single_flight.do(self.key, self._fetch_and_store)

    def _serve_cached(self, entry: CacheEntry[T], *, is_stale: bool, error: Exception | None = None) -> T:
        self._commit(
            LoaderState(
                data=entry.data,
                is_loading=False,
                error=error,
                is_stale=is_stale,
                last_fetched=entry.stored_at,
                source=DataSource.CACHE,
            )
        )
        return entry.data

    def _serve_fallback(self, fallback: T, error: Exception) -> T:
        self._commit(
            LoaderState(
                data=fallback,
                is_loading=False,
                error=error,
                is_stale=True,
                last_fetched=None,
                source=DataSource.FALLBACK,
            )
        )
        return fallback

    async def load(self, force_refresh: bool = False) -> T:
        """Resolve data for this query, raising only when nothing at all can be served."""

        self._commit(replace(self._state, is_loading=True, error=None))

        entry = self._cache.peek(self.key)
        is_cache_stale = self._is_stale(entry)

        if self._monitor.is_offline:
            if entry is not None:
                return self._serve_cached(entry, is_stale=is_cache_stale)
            if self.fallback_data is not None:
                return self._serve_fallback(self.fallback_data, NoDataError(OFFLINE_FALLBACK_DETAIL))
            offline_error = NoDataError(NO_OFFLINE_DATA_DETAIL)
            self._commit(LoaderState(data=None, is_loading=False, error=offline_error, source=DataSource.CACHE))
            raise offline_error

        if entry is not None and not is_cache_stale and not force_refresh:
            return self._serve_cached(entry, is_stale=False)

        try:
            data = await self._fetch_from_network()
        except Exception as exc:
            if isinstance(exc, StillnestError):
                err: StillnestError = exc
            else:
                err = NetworkError(str(exc) or "Network fetch failed")
                err.__cause__ = exc
            logger.warning("Fetch for %s failed: %s", self.key, err)
            if self._on_error is not None:
                self._on_error(err)

            # The cache may have been refreshed by a concurrent load meanwhile.
            entry = self._cache.peek(self.key)
            if entry is not None:
                return self._serve_cached(entry, is_stale=True, error=err)
            if self.fallback_data is not None:
                return self._serve_fallback(self.fallback_data, err)

            self._commit(LoaderState(data=None, is_loading=False, error=err, source=DataSource.NETWORK))
            raise err

        self._commit(
            LoaderState(
                data=data,
                is_loading=False,
                error=None,
                is_stale=False,
                last_fetched=self._clock(),
                source=DataSource.NETWORK,
            )
        )
        return data

    async def refresh(self) -> T:
        return await self.load(force_refresh=True)

    def clear_cache(self) -> None:
        self._cache.delete(self.key)

    async def _resume(self) -> None:
        try:
            await self.load()
        except StillnestError as exc:
            logger.info("Reload of %s after reconnecting failed: %s", self.key, exc)

    def _on_connectivity_change(self, previous: ConnectivityState, current: ConnectivityState) -> None:
        if self._closed or not (previous.is_offline and current.is_online):
            return
        if not (self._state.source is DataSource.CACHE and self._state.error is not None):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._resume())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def close(self) -> None:
        """Detach from the monitor; later completions no longer touch state."""

        self._closed = True
        self._unsubscribe()
        for task in list(self._pending):
            task.cancel()


__all__ = ["DataSource", "LoaderState", "ResilientDataLoader"]
