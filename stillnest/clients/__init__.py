"""HTTP clients for the photo-sharing backend."""
from .api_client import ApiClient
from .probe import HttpProbe
from .query_builder import build_photo_query, build_user_query, escape_like

__all__ = ["ApiClient", "HttpProbe", "build_photo_query", "build_user_query", "escape_like"]
