"""Error taxonomy shared by the client data layer."""
from __future__ import annotations


class StillnestError(RuntimeError):
    """Base class for errors raised by the data layer."""


class NetworkError(StillnestError):
    """Raised when a fetch, mutation or probe cannot reach the backend."""

    def __init__(self, message: str = "Network request failed", *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(StillnestError):
    """Durable persistence failed. Logged by the cache, never surfaced to callers."""


class NoDataError(StillnestError):
    """No network, cached or fallback data can be produced for a query."""


__all__ = ["StillnestError", "NetworkError", "StorageError", "NoDataError"]
