"""Pydantic schemas shared by the client and the health endpoint."""
from .health import HealthResponse
from .photos import Photo, PhotoAuthor, UserProfile
from .search import OrderClause, PhotoSearchFilters, QueryCondition, SortOrder, StructuredQuery

__all__ = [
    "HealthResponse",
    "Photo",
    "PhotoAuthor",
    "UserProfile",
    "OrderClause",
    "PhotoSearchFilters",
    "QueryCondition",
    "SortOrder",
    "StructuredQuery",
]
