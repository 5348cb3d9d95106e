"""Page-at-a-time list controller shared by the discovery, feed, gallery and search views."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

from .cache_service import TTLCache, cache_key_for_feed, create_cache_key
from .scroll_service import InfiniteScrollController

logger = logging.getLogger(__name__)

T = TypeVar("T")

PageFetcher = Callable[[int, int], Awaitable[list[T]]]

DEFAULT_PAGE_SIZE = 20


class PaginatedFeed(Generic[T]):
    """Accumulates pages returned by ``fetch_page(page, limit)``.

    A short page (fewer than ``page_size`` items) marks the end of the list.
    Pages are read through the feed cache, keyed by ``scope`` and page number.
    """

    def __init__(
        self,
        scope: str,
        fetch_page: PageFetcher[T],
        *,
        cache: TTLCache[list[T]] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.scope = scope
        self.page_size = page_size
        self._fetch_page = fetch_page
        self._cache = cache
        self.items: list[T] = []
        self.current_page = 0
        self.has_next_page = False
        self.is_loading = False
        self.is_fetching_next_page = False
        self.error: Exception | None = None
        self._scroll: InfiniteScrollController | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    def _sync_scroll(self) -> None:
        if self._scroll is not None:
            self._scroll.update(
                has_next_page=self.has_next_page,
                is_fetching_next_page=self.is_fetching_next_page,
            )

    async def _read_page(self, page: int, *, use_cache: bool = True) -> list[T]:
        key = cache_key_for_feed(self.scope, page)
        if use_cache and self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        items = await self._fetch_page(page, self.page_size)
        if self._cache is not None:
            self._cache.set(key, items)
        return items

    async def load_first_page(self, *, force_refresh: bool = False) -> list[T]:
        if force_refresh:
            # Later pages must not be served from before the refresh.
            self.invalidate()
        self.is_loading = True
        self.error = None
        try:
            items = await self._read_page(0, use_cache=not force_refresh)
        except Exception as exc:
            self.error = exc
            logger.error("Failed to load first page of %s: %s", self.scope, exc)
            raise
        finally:
            self.is_loading = False
            self._sync_scroll()

        self.items = list(items)
        self.current_page = 0
        self.has_next_page = len(items) == self.page_size
        self._sync_scroll()
        return self.items

    async def fetch_next_page(self) -> list[T]:
        if self.is_fetching_next_page or not self.has_next_page:
            return []

        next_page = self.current_page + 1
        self.is_fetching_next_page = True
        self.error = None
        self._sync_scroll()
        try:
            items = await self._read_page(next_page)
        except Exception as exc:
            self.error = exc
            logger.error("Failed to load page %d of %s: %s", next_page, self.scope, exc)
            raise
        finally:
            self.is_fetching_next_page = False
            self._sync_scroll()

        self.current_page = next_page
        self.items.extend(items)
        self.has_next_page = len(items) == self.page_size
        self._sync_scroll()
        return list(items)

    async def _fetch_next_page_quietly(self) -> None:
        try:
            await self.fetch_next_page()
        except Exception:
            # Already recorded on ``error`` and logged.
            return

    def request_next_page(self) -> None:
        """Synchronous trigger for UI callbacks; schedules ``fetch_next_page``."""

        if self.is_fetching_next_page or not self.has_next_page:
            return
        task = asyncio.get_running_loop().create_task(self._fetch_next_page_quietly())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def bind_scroll(self, controller: InfiniteScrollController) -> InfiniteScrollController:
        self._scroll = controller
        self._sync_scroll()
        return controller

    def create_scroll_controller(self, **options: object) -> InfiniteScrollController:
        controller = InfiniteScrollController(self.request_next_page, **options)  # type: ignore[arg-type]
        return self.bind_scroll(controller)

    def invalidate(self) -> None:
        """Drop cached pages for this scope."""

        if self._cache is None:
            return
        prefix = create_cache_key("feed", self.scope, "")
        for key in self._cache.keys():
            if key.startswith(prefix):
                self._cache.delete(key)

    def reset(self) -> None:
        self.items = []
        self.current_page = 0
        self.has_next_page = False
        self.is_loading = False
        self.is_fetching_next_page = False
        self.error = None
        self._sync_scroll()


__all__ = ["DEFAULT_PAGE_SIZE", "PageFetcher", "PaginatedFeed"]
