"""Build structured photo and user search queries from typed filters."""
from __future__ import annotations

from ..schemas import OrderClause, PhotoSearchFilters, QueryCondition, SortOrder, StructuredQuery

DEFAULT_PHOTO_PAGE_SIZE = 20
DEFAULT_USER_PAGE_SIZE = 10


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text only ever matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains(value: str) -> str:
    return f"%{escape_like(value)}%"


def _page_window(page: int, limit: int) -> tuple[int, int]:
    if page < 0:
        raise ValueError("page must be non-negative")
    if limit < 1:
        raise ValueError("limit must be positive")
    return page * limit, limit


def build_photo_query(
    filters: PhotoSearchFilters, page: int = 0, limit: int = DEFAULT_PHOTO_PAGE_SIZE
) -> StructuredQuery:
    offset, limit = _page_window(page, limit)
    query = StructuredQuery(resource="photos", offset=offset, limit=limit)

    if filters.query:
        pattern = _contains(filters.query)
        query.any_of = [
            QueryCondition(field="title", op="ilike", value=pattern),
            QueryCondition(field="caption", op="ilike", value=pattern),
        ]

    if filters.tags:
        # Matches photos carrying any of the selected tags.
        query.conditions.append(QueryCondition(field="tags", op="overlaps", value=list(filters.tags)))
    if filters.user_id:
        query.conditions.append(QueryCondition(field="user_id", op="eq", value=filters.user_id))
    if filters.date_from:
        query.conditions.append(QueryCondition(field="created_at", op="gte", value=filters.date_from.isoformat()))
    if filters.date_to:
        query.conditions.append(QueryCondition(field="created_at", op="lte", value=filters.date_to.isoformat()))

    # TODO: order SortOrder.POPULAR by like count once the backend exposes it; it sorts as recent for now.
    query.order = OrderClause(field="created_at", ascending=filters.sort_by is SortOrder.OLDEST)
    return query


def build_user_query(text: str, page: int = 0, limit: int = DEFAULT_USER_PAGE_SIZE) -> StructuredQuery:
    offset, limit = _page_window(page, limit)
    raw = text.strip()
    handle_search = raw.startswith("@")
    cleaned = raw[1:] if handle_search else raw

    query = StructuredQuery(resource="users", offset=offset, limit=limit)
    if not cleaned:
        return query

    pattern = _contains(cleaned)
    any_of = [
        QueryCondition(field="username", op="ilike", value=pattern),
        QueryCondition(field="display_name", op="ilike", value=pattern),
        QueryCondition(field="bio", op="ilike", value=pattern),
    ]
    if handle_search:
        any_of.insert(1, QueryCondition(field="username", op="ilike", value=escape_like(cleaned)))
    query.any_of = any_of
    query.order = OrderClause(field="username", ascending=True)
    return query


__all__ = [
    "DEFAULT_PHOTO_PAGE_SIZE",
    "DEFAULT_USER_PAGE_SIZE",
    "build_photo_query",
    "build_user_query",
    "escape_like",
]
