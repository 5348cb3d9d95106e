"""Application-level registry owning the caches, connectivity monitor and API client.

Consumers receive a ``DataLayer`` explicitly instead of importing module-level
singletons, so tests can build fully isolated instances.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import TypeAdapter

from ..clients.api_client import ApiClient
from ..clients.probe import HttpProbe
from ..config import Settings, get_settings
from ..constants import FEED_CACHE_NAME, OFFLINE_CACHE_NAME, PHOTO_CACHE_NAME, USER_CACHE_NAME
from ..database import build_engine, build_session_factory, init_db
from ..schemas import Photo, PhotoSearchFilters, UserProfile
from .cache_service import CacheStats, TTLCache, cache_key_for_photo, cache_key_for_user
from .connectivity_service import ConnectivityMonitor, Probe
from .data_loader_service import ResilientDataLoader
from .optimistic_service import FollowToggle, LikeSet, Notifier
from .pagination_service import PageFetcher, PaginatedFeed
from .retry_service import RetryableOperation, call_with_backoff
from .single_flight import SingleFlight
from .storage_service import KeyValueStorage, SqlStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_storage(settings: Settings) -> SqlStorage:
    """Open (and create when missing) the SQL-backed durable storage."""

    engine = build_engine(settings.storage_database_url)
    init_db(engine)
    return SqlStorage(build_session_factory(engine))


class DataLayer:
    def __init__(
        self,
        *,
        settings: Settings,
        storage: KeyValueStorage,
        monitor: ConnectivityMonitor,
        api: ApiClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self.monitor = monitor
        self.api = api
        self.single_flight = SingleFlight()
        self._clock = clock

        namespace = settings.cache_namespace
        self.photos: TTLCache[Photo] = TTLCache(
            PHOTO_CACHE_NAME,
            ttl=settings.photo_cache_ttl,
            max_size=settings.photo_cache_max_size,
            persist=True,
            storage=storage,
            adapter=TypeAdapter(Photo),
            namespace=namespace,
            clock=clock,
        )
        self.users: TTLCache[UserProfile] = TTLCache(
            USER_CACHE_NAME,
            ttl=settings.user_cache_ttl,
            max_size=settings.user_cache_max_size,
            persist=True,
            storage=storage,
            adapter=TypeAdapter(UserProfile),
            namespace=namespace,
            clock=clock,
        )
        # Feed pages live in memory only.
        self.feed: TTLCache[Any] = TTLCache(
            FEED_CACHE_NAME,
            ttl=settings.feed_cache_ttl,
            max_size=settings.feed_cache_max_size,
            persist=False,
            namespace=namespace,
            clock=clock,
        )
        self.offline: TTLCache[Any] = TTLCache(
            OFFLINE_CACHE_NAME,
            ttl=settings.offline_cache_ttl,
            max_size=settings.offline_cache_max_size,
            persist=True,
            storage=storage,
            # Models are dumped as plain JSON; entries restored from storage come back as dicts and lists.
            adapter=TypeAdapter(Any),
            namespace=namespace,
            clock=clock,
        )
        self._loaders: list[ResilientDataLoader[Any]] = []

    @property
    def caches(self) -> dict[str, TTLCache[Any]]:
        return {
            PHOTO_CACHE_NAME: self.photos,
            USER_CACHE_NAME: self.users,
            FEED_CACHE_NAME: self.feed,
            OFFLINE_CACHE_NAME: self.offline,
        }

    # -- lifecycle -------------------------------------------------------

    async def start(self) -> None:
        await self.monitor.start()
        for cache in self.caches.values():
            cache.start_sweeper(self.settings.cache_sweep_interval)
        logger.info("Data layer started (online=%s)", self.monitor.is_online)

    async def aclose(self) -> None:
        for loader in self._loaders:
            loader.close()
        self._loaders.clear()
        await self.monitor.stop()
        for cache in self.caches.values():
            await cache.stop_sweeper()
        await self.api.aclose()

    # -- factories -------------------------------------------------------

    def loader(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[T]],
        *,
        ttl: float | None = None,
        fallback_data: T | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> ResilientDataLoader[T]:
        loader: ResilientDataLoader[T] = ResilientDataLoader(
            key,
            fetch_fn,
            cache=self.offline,
            monitor=self.monitor,
            ttl=ttl if ttl is not None else self.settings.loader_ttl,
            fallback_data=fallback_data,
            on_error=on_error,
            single_flight=self.single_flight,
            clock=self._clock,
        )
        self._loaders.append(loader)
        return loader

    def release(self, loader: ResilientDataLoader[Any]) -> None:
        loader.close()
        if loader in self._loaders:
            self._loaders.remove(loader)

    def retryable(self, operation: Callable[[], Awaitable[T]], **options: Any) -> RetryableOperation[T]:
        options.setdefault("max_retries", self.settings.retry_max_retries)
        options.setdefault("retry_delay", self.settings.retry_delay)
        return RetryableOperation(operation, **options)

    def feed_for(self, scope: str, fetch_page: PageFetcher[T]) -> PaginatedFeed[T]:
        return PaginatedFeed(scope, fetch_page, cache=self.feed, page_size=self.settings.feed_page_size)

    def discover_feed(self) -> PaginatedFeed[Photo]:
        return self.feed_for("discover", self.api.list_photos)

    def following_feed(self, user_id: str) -> PaginatedFeed[Photo]:
        async def _fetch(page: int, limit: int) -> list[Photo]:
            return await self.api.list_following_feed(user_id, page, limit)

        return self.feed_for(f"following:{user_id}", _fetch)

    def gallery_feed(self, user_id: str) -> PaginatedFeed[Photo]:
        async def _fetch(page: int, limit: int) -> list[Photo]:
            return await self.api.list_user_photos(user_id, page, limit)

        return self.feed_for(f"gallery:{user_id}", _fetch)

    def search_feed(self, filters: PhotoSearchFilters) -> PaginatedFeed[Photo]:
        async def _fetch(page: int, limit: int) -> list[Photo]:
            return await self.api.search_photos(filters, page, limit)

        return self.feed_for(f"search:{filters.model_dump_json()}", _fetch)

    def like_set(self, user_id: str, *, notify: Notifier | None = None) -> LikeSet:
        return LikeSet(self.api, user_id, notify=notify)

    def follow_toggle(self, user_id: str, current_user_id: str, **options: Any) -> FollowToggle:
        return FollowToggle(self.api, user_id, current_user_id, **options)

    # -- cached lookups --------------------------------------------------

    async def _read(self, fn: Callable[[], Awaitable[T]]) -> T:
        return await call_with_backoff(fn, attempts=self.settings.read_retry_attempts)

    async def get_photo(self, photo_id: str) -> Photo:
        key = cache_key_for_photo(photo_id)
        cached = self.photos.get(key)
        if cached is not None:
            return cached
        photo = await self.single_flight.do(key, lambda: self._read(lambda: self.api.get_photo(photo_id)))
        self.photos.set(key, photo)
        return photo

    async def get_user(self, user_id: str) -> UserProfile:
        key = cache_key_for_user(user_id)
        cached = self.users.get(key)
        if cached is not None:
            return cached
        user = await self.single_flight.do(key, lambda: self._read(lambda: self.api.get_user(user_id)))
        self.users.set(key, user)
        return user

    # -- cache utilities -------------------------------------------------

    def clear_all_caches(self) -> None:
        for cache in self.caches.values():
            cache.clear()

    def get_cache_stats(self) -> dict[str, CacheStats]:
        return {name: cache.get_stats() for name, cache in self.caches.items()}


def create_data_layer(
    settings: Settings | None = None,
    *,
    storage: KeyValueStorage | None = None,
    probe: Probe | None = None,
    platform_online: Callable[[], bool] | None = None,
    api: ApiClient | None = None,
    clock: Callable[[], float] = time.time,
) -> DataLayer:
    settings = settings or get_settings()
    if storage is None:
        storage = create_storage(settings)
    if probe is None:
        probe = HttpProbe(settings.api_base_url, path=settings.health_path, timeout=settings.probe_timeout)
    monitor_options: dict[str, Any] = {"check_interval": settings.connectivity_check_interval, "clock": clock}
    if platform_online is not None:
        monitor_options["platform_online"] = platform_online
    monitor = ConnectivityMonitor(probe, **monitor_options)
    if api is None:
        api = ApiClient(settings.api_base_url, token=settings.api_token, timeout=settings.request_timeout)
    return DataLayer(settings=settings, storage=storage, monitor=monitor, api=api, clock=clock)


__all__ = ["DataLayer", "create_data_layer", "create_storage"]
