"""Convenience exports for the service layer."""
from .cache_service import (
    CacheEntry,
    CacheStats,
    TTLCache,
    cache_key_for_feed,
    cache_key_for_photo,
    cache_key_for_user,
    cache_key_for_user_photos,
    create_cache_key,
)
from .connectivity_service import ConnectivityMonitor, ConnectivityState, format_downtime
from .context import DataLayer, create_data_layer, create_storage
from .data_loader_service import DataSource, LoaderState, ResilientDataLoader
from .optimistic_service import FollowToggle, LikeSet, MutationPhase, OptimisticToggle
from .pagination_service import PaginatedFeed
from .retry_service import RetryableOperation, RetryState, call_with_backoff
from .scroll_service import InfiniteScrollController, IntersectionEntry, ManualIntersectionObserver
from .single_flight import SingleFlight
from .storage_service import KeyValueStorage, MemoryStorage, SqlStorage

__all__ = [
    "CacheEntry",
    "CacheStats",
    "TTLCache",
    "create_cache_key",
    "cache_key_for_photo",
    "cache_key_for_user",
    "cache_key_for_feed",
    "cache_key_for_user_photos",
    "ConnectivityMonitor",
    "ConnectivityState",
    "format_downtime",
    "DataLayer",
    "create_data_layer",
    "create_storage",
    "DataSource",
    "LoaderState",
    "ResilientDataLoader",
    "FollowToggle",
    "LikeSet",
    "MutationPhase",
    "OptimisticToggle",
    "PaginatedFeed",
    "RetryableOperation",
    "RetryState",
    "call_with_backoff",
    "InfiniteScrollController",
    "IntersectionEntry",
    "ManualIntersectionObserver",
    "SingleFlight",
    "KeyValueStorage",
    "MemoryStorage",
    "SqlStorage",
]
