"""Project-wide constant values."""
from __future__ import annotations

PHOTO_CACHE_NAME = "photos"
USER_CACHE_NAME = "users"
FEED_CACHE_NAME = "feed"
OFFLINE_CACHE_NAME = "offline"

CACHE_KEY_SEPARATOR = ":"

NO_OFFLINE_DATA_DETAIL = "No cached data available offline"
OFFLINE_FALLBACK_DETAIL = "Offline - using fallback data"  # attached to fallback results served offline

__all__ = [
    "PHOTO_CACHE_NAME",
    "USER_CACHE_NAME",
    "FEED_CACHE_NAME",
    "OFFLINE_CACHE_NAME",
    "CACHE_KEY_SEPARATOR",
    "NO_OFFLINE_DATA_DETAIL",
    "OFFLINE_FALLBACK_DETAIL",
]
