"""Typed search filters and the structured queries built from them."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class SortOrder(str, Enum):
    RECENT = "recent"
    OLDEST = "oldest"
    POPULAR = "popular"


class PhotoSearchFilters(BaseModel):
    query: str | None = Field(default=None, max_length=200)
    tags: list[str] = Field(default_factory=list)
    date_from: datetime | None = None
    date_to: datetime | None = None
    user_id: str | None = None
    sort_by: SortOrder = SortOrder.RECENT

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in value:
            cleaned = tag.strip()
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen


class QueryCondition(BaseModel):
    """One structured filter: the value is always passed as data, never spliced into text."""

    field: str
    op: Literal["eq", "gte", "lte", "ilike", "overlaps"]
    value: str | list[str]


class OrderClause(BaseModel):
    field: str
    ascending: bool = False


class StructuredQuery(BaseModel):
    resource: str
    # Conditions inside ``any_of`` are OR-ed together; ``conditions`` are AND-ed.
    any_of: list[QueryCondition] = Field(default_factory=list)
    conditions: list[QueryCondition] = Field(default_factory=list)
    order: OrderClause | None = None
    offset: int = 0
    limit: int = 20


__all__ = [
    "OrderClause",
    "PhotoSearchFilters",
    "QueryCondition",
    "SortOrder",
    "StructuredQuery",
]
