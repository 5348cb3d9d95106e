"""Keyed TTL caches with max-size eviction and optional durable persistence."""
from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, TypeVar

from pydantic import TypeAdapter

from ..constants import CACHE_KEY_SEPARATOR
from ..errors import StorageError
from .storage_service import KeyValueStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]

_DEFAULT_TTL = 5 * 60.0
_DEFAULT_MAX_SIZE = 100
_DEFAULT_SWEEP_INTERVAL = 60.0


@dataclass
class CacheEntry(Generic[T]):
    data: T
    stored_at: float
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now <= self.expires_at


@dataclass(frozen=True, slots=True)
class CacheStats:
    total: int
    valid: int
    expired: int
    max_size: int


class TTLCache(Generic[T]):
    """In-memory cache whose entries expire ``ttl`` seconds after being stored.

    When full, the oldest *inserted* entry is evicted to make room. With
    ``persist`` enabled the whole map is serialised to ``storage`` after every
    mutation and reloaded (minus expired entries) on construction. Storage
    failures are logged and ignored; the in-memory state stays authoritative.
    """

    def __init__(
        self,
        name: str,
        *,
        ttl: float = _DEFAULT_TTL,
        max_size: int = _DEFAULT_MAX_SIZE,
        persist: bool = False,
        storage: KeyValueStorage | None = None,
        adapter: TypeAdapter[Any] | None = None,
        namespace: str = "stillnest_cache",
        clock: Clock = time.time,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if persist and storage is None:
            raise ValueError("persisted caches require a storage backend")

        self.name = name
        self.ttl = float(ttl)
        self.max_size = max_size
        self.persist = persist
        self.storage_key = f"{namespace}_{name}"
        self._storage = storage
        self._adapter = adapter
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._sweeper: asyncio.Task[None] | None = None
        self._sweeper_stop = asyncio.Event()

        if self.persist:
            self._load_from_storage()

    # -- core operations -------------------------------------------------

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        now = self._clock()
        expires_at = now + (ttl if ttl else self.ttl)

        if len(self._entries) >= self.max_size:
            oldest_key = next(iter(self._entries), None)
            if oldest_key is not None:
                del self._entries[oldest_key]

        # Overwriting a surviving key keeps its first insertion position.
        self._entries[key] = CacheEntry(data=value, stored_at=now, expires_at=expires_at)

        if self.persist:
            self._save_to_storage()

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if not entry.is_valid(self._clock()):
            del self._entries[key]
            if self.persist:
                self._save_to_storage()
            return None

        return entry.data

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def peek(self, key: str) -> CacheEntry[T] | None:
        """Return the raw entry, expired or not, without touching the cache."""
        return self._entries.get(key)

    def delete(self, key: str) -> bool:
        deleted = self._entries.pop(key, None) is not None
        if deleted and self.persist:
            self._save_to_storage()
        return deleted

    def clear(self) -> None:
        self._entries.clear()
        if self.persist and self._storage is not None:
            try:
                self._storage.remove_item(self.storage_key)
            except Exception as exc:
                logger.warning("Failed to clear cache %s from storage: %s", self.name, StorageError(str(exc)))

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def get_stats(self) -> CacheStats:
        now = self._clock()
        valid = sum(1 for entry in self._entries.values() if entry.is_valid(now))
        total = len(self._entries)
        return CacheStats(total=total, valid=valid, expired=total - valid, max_size=self.max_size)

    # -- expiry sweep ----------------------------------------------------

    def sweep(self) -> int:
        """Remove every expired entry and return how many were dropped."""

        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
        for key in expired:
            del self._entries[key]

        if expired and self.persist:
            self._save_to_storage()
        if expired:
            logger.debug("Swept %d expired entries from cache %s", len(expired), self.name)
        return len(expired)

    async def _sweep_loop(self, interval: float) -> None:
        while not self._sweeper_stop.is_set():
            try:
                await asyncio.wait_for(self._sweeper_stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                self.sweep()

    def start_sweeper(self, interval: float = _DEFAULT_SWEEP_INTERVAL) -> None:
        """Schedule ``sweep`` every ``interval`` seconds on the running loop."""

        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper_stop.clear()
        self._sweeper = asyncio.create_task(self._sweep_loop(interval))

    async def stop_sweeper(self) -> None:
        self._sweeper_stop.set()
        if self._sweeper is not None:
            try:
                await self._sweeper
            except asyncio.CancelledError:  # pragma: no cover - loop shutdown
                pass
            self._sweeper = None

    # -- persistence -----------------------------------------------------

    def _encode(self, value: T) -> Any:
        if self._adapter is None:
            return value
        return self._adapter.dump_python(value, mode="json")

    def _decode(self, raw: Any) -> T:
        if self._adapter is None:
            return raw
        return self._adapter.validate_python(raw)

    def _save_to_storage(self) -> None:
        if self._storage is None:
            return
        try:
            payload = [
                [key, {"data": self._encode(entry.data), "stored_at": entry.stored_at, "expires_at": entry.expires_at}]
                for key, entry in self._entries.items()
            ]
            self._storage.set_item(self.storage_key, json.dumps(payload))
        except Exception as exc:
            logger.warning("Failed to save cache %s to storage: %s", self.name, StorageError(str(exc)))

    def _load_from_storage(self) -> None:
        if self._storage is None:
            return
        try:
            raw = self._storage.get_item(self.storage_key)
            if not raw:
                return
            records: Iterable[Any] = json.loads(raw)
            now = self._clock()
            for key, item in records:
                expires_at = float(item["expires_at"])
                # Only load non-expired items
                if now > expires_at:
                    continue
                self._entries[str(key)] = CacheEntry(
                    data=self._decode(item["data"]),
                    stored_at=float(item["stored_at"]),
                    expires_at=expires_at,
                )
        except Exception as exc:
            logger.warning("Failed to load cache %s from storage: %s", self.name, StorageError(str(exc)))

        # A map persisted under a larger max_size keeps only its newest inserts.
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)


def create_cache_key(*parts: str | int) -> str:
    return CACHE_KEY_SEPARATOR.join(str(part) for part in parts)


def cache_key_for_photo(photo_id: str) -> str:
    return create_cache_key("photo", photo_id)


def cache_key_for_user(user_id: str) -> str:
    return create_cache_key("user", user_id)


def cache_key_for_feed(user_id: str, page: int) -> str:
    return create_cache_key("feed", user_id, page)


def cache_key_for_user_photos(user_id: str, page: int) -> str:
    return create_cache_key("user_photos", user_id, page)


__all__ = [
    "CacheEntry",
    "CacheStats",
    "TTLCache",
    "create_cache_key",
    "cache_key_for_photo",
    "cache_key_for_user",
    "cache_key_for_feed",
    "cache_key_for_user_photos",
]
