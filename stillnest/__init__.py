"""Offline-aware client data layer for the Stillnest photo-sharing network."""
from .errors import NetworkError, NoDataError, StillnestError, StorageError

__version__ = "0.1.0"

__all__ = ["NetworkError", "NoDataError", "StillnestError", "StorageError", "__version__"]
