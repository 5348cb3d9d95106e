from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from ..errors import NetworkError
from ..schemas import Photo, PhotoSearchFilters, StructuredQuery, UserProfile
from .query_builder import build_photo_query, build_user_query

logger = logging.getLogger(__name__)

_PHOTO_LIST = TypeAdapter(list[Photo])
_USER_LIST = TypeAdapter(list[UserProfile])


class ApiClient:
    """Thin async wrapper over the photo-sharing backend.

    Every failure (transport error, timeout, error status, malformed payload)
    surfaces as ``NetworkError`` so the data layer can degrade uniformly.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %r", method, path, exc)
            raise NetworkError(f"{method} {path} failed") from exc

        if response.is_error:
            detail = f"HTTP {response.status_code}"
            text = (response.text or "").strip()
            if text:
                detail += f": {text[:200]}"
            raise NetworkError(f"{method} {path} returned {detail}", status_code=response.status_code)

        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _items(payload: Any) -> list[Any]:
        if isinstance(payload, dict):
            items = payload.get("items")
            return items if isinstance(items, list) else []
        if isinstance(payload, list):
            return payload
        return []

    def _photos(self, payload: Any) -> list[Photo]:
        try:
            return _PHOTO_LIST.validate_python(self._items(payload))
        except ValidationError as exc:
            raise NetworkError("Invalid photo payload") from exc

    def _users(self, payload: Any) -> list[UserProfile]:
        try:
            return _USER_LIST.validate_python(self._items(payload))
        except ValidationError as exc:
            raise NetworkError("Invalid user payload") from exc

    # -- mutations ---------------------------------------------------------

    async def like_photo(self, photo_id: str, user_id: str) -> None:
        await self._request("POST", f"/likes/{photo_id}", json={"user_id": user_id})

    async def unlike_photo(self, photo_id: str, user_id: str) -> None:
        await self._request("DELETE", f"/likes/{photo_id}", json={"user_id": user_id})

    async def follow_user(self, following_id: str, follower_id: str) -> None:
        await self._request("POST", f"/follows/{following_id}", json={"follower_id": follower_id})

    async def unfollow_user(self, following_id: str, follower_id: str) -> None:
        await self._request("DELETE", f"/follows/{following_id}", json={"follower_id": follower_id})

    # -- queries -----------------------------------------------------------

    async def get_user_likes(self, user_id: str) -> list[str]:
        payload = await self._request("GET", f"/users/{user_id}/likes")
        photo_ids = payload.get("photo_ids") if isinstance(payload, dict) else None
        return [str(value) for value in photo_ids or []]

    async def get_photo(self, photo_id: str) -> Photo:
        payload = await self._request("GET", f"/photos/{photo_id}")
        try:
            return Photo.model_validate(payload)
        except ValidationError as exc:
            raise NetworkError("Invalid photo payload") from exc

    async def get_user(self, user_id: str) -> UserProfile:
        payload = await self._request("GET", f"/users/{user_id}")
        try:
            return UserProfile.model_validate(payload)
        except ValidationError as exc:
            raise NetworkError("Invalid user payload") from exc

    async def list_photos(self, page: int = 0, limit: int = 20) -> list[Photo]:
        payload = await self._request("GET", "/photos", params={"page": page, "limit": limit})
        return self._photos(payload)

    async def list_user_photos(self, user_id: str, page: int = 0, limit: int = 20) -> list[Photo]:
        payload = await self._request("GET", f"/users/{user_id}/photos", params={"page": page, "limit": limit})
        return self._photos(payload)

    async def list_following_feed(self, user_id: str, page: int = 0, limit: int = 20) -> list[Photo]:
        payload = await self._request("GET", f"/feed/{user_id}", params={"page": page, "limit": limit})
        return self._photos(payload)

    async def run_query(self, query: StructuredQuery) -> Any:
        return await self._request("POST", f"/{query.resource}/query", json=query.model_dump(mode="json"))

    async def search_photos(self, filters: PhotoSearchFilters, page: int = 0, limit: int = 20) -> list[Photo]:
        payload = await self.run_query(build_photo_query(filters, page, limit))
        return self._photos(payload)

    async def search_users(self, text: str, page: int = 0, limit: int = 10) -> list[UserProfile]:
        payload = await self.run_query(build_user_query(text, page, limit))
        return self._users(payload)


__all__ = ["ApiClient"]
