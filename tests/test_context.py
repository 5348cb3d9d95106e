"""Tests for the data-layer registry wiring caches, monitor and client together."""
from __future__ import annotations

import httpx
import pytest

from stillnest.clients import ApiClient
from stillnest.config import Settings
from stillnest.schemas import Photo
from stillnest.services import DataLayer, SqlStorage, create_data_layer, create_storage
from stillnest.services.cache_service import cache_key_for_photo

USER = {"id": "u1", "username": "ada", "created_at": "2024-01-01T00:00:00Z"}
PHOTO = {
    "id": "p1",
    "user_id": "u1",
    "file_url": "https://cdn.example.com/p1.jpg",
    "created_at": "2024-05-01T06:00:00Z",
}


class Backend:
    def __init__(self) -> None:
        self.hits: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.hits.append(f"{request.method} {request.url.path}")
        if request.url.path == "/photos/p1":
            return httpx.Response(200, json=PHOTO)
        if request.url.path == "/users/u1":
            return httpx.Response(200, json=USER)
        if request.url.path in ("/photos", "/feed/u1", "/users/u1/photos"):
            return httpx.Response(200, json={"items": [PHOTO]})
        return httpx.Response(404)


@pytest.fixture
def settings() -> Settings:
    return Settings(storage_database_url="sqlite+pysqlite:///:memory:", cache_sweep_interval=3600)


@pytest.fixture
def backend() -> Backend:
    return Backend()


@pytest.fixture
def layer(settings, storage, probe, clock, backend) -> DataLayer:
    api = ApiClient(settings.api_base_url, transport=httpx.MockTransport(backend))
    return create_data_layer(settings, storage=storage, probe=probe, api=api, clock=clock)


@pytest.mark.asyncio
async def test_get_photo_reads_through_cache(layer: DataLayer, backend: Backend) -> None:
    first = await layer.get_photo("p1")
    second = await layer.get_photo("p1")

    assert isinstance(first, Photo)
    assert second == first
    assert backend.hits == ["GET /photos/p1"]
    await layer.aclose()


@pytest.mark.asyncio
async def test_persisted_photos_survive_a_new_layer(settings, storage, probe, clock, layer: DataLayer) -> None:
    await layer.get_photo("p1")
    await layer.aclose()

    def _offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    api = ApiClient(settings.api_base_url, transport=httpx.MockTransport(_offline))
    restored = create_data_layer(settings, storage=storage, probe=probe, api=api, clock=clock)

    photo = restored.photos.get(cache_key_for_photo("p1"))
    assert isinstance(photo, Photo)
    assert photo.id == "p1"
    assert (await restored.get_photo("p1")).id == "p1"
    await restored.aclose()


@pytest.mark.asyncio
async def test_loaders_use_offline_cache_and_close_with_layer(layer: DataLayer) -> None:
    loader = layer.loader("discover", lambda: layer.api.list_photos(0, 20))

    photos = await loader.load()

    assert [photo.id for photo in photos] == ["p1"]
    assert loader.ttl == layer.settings.loader_ttl
    assert layer.offline.get("discover") == photos

    await layer.aclose()
    assert loader.closed is True


@pytest.mark.asyncio
async def test_release_closes_a_single_loader(layer: DataLayer) -> None:
    kept = layer.loader("a", lambda: layer.api.list_photos())
    released = layer.loader("b", lambda: layer.api.list_photos())

    layer.release(released)

    assert released.closed is True
    assert kept.closed is False
    await layer.aclose()


@pytest.mark.asyncio
async def test_discover_feed_pages_through_feed_cache(layer: DataLayer, backend: Backend) -> None:
    feed = layer.discover_feed()

    items = await feed.load_first_page()

    assert [photo.id for photo in items] == ["p1"]
    assert feed.has_next_page is False
    assert feed.page_size == layer.settings.feed_page_size
    assert layer.feed.keys() == ["feed:discover:0"]
    await layer.aclose()


@pytest.mark.asyncio
async def test_retryable_uses_configured_limits(layer: DataLayer) -> None:
    async def _operation() -> str:
        return "done"

    operation = layer.retryable(_operation)

    assert operation.max_retries == layer.settings.retry_max_retries
    assert await operation.execute() == "done"
    await layer.aclose()


@pytest.mark.asyncio
async def test_cache_stats_and_clear(layer: DataLayer) -> None:
    await layer.get_photo("p1")

    stats = layer.get_cache_stats()
    assert set(stats) == {"photos", "users", "feed", "offline"}
    assert stats["photos"].valid == 1
    assert stats["photos"].max_size == layer.settings.photo_cache_max_size

    layer.clear_all_caches()
    assert all(cache.size() == 0 for cache in layer.caches.values())
    await layer.aclose()


@pytest.mark.asyncio
async def test_start_initialises_monitor(layer: DataLayer, probe) -> None:
    await layer.start()
    try:
        assert layer.monitor.is_initialized is True
        assert layer.monitor.is_online is True
        assert probe.calls == 0
    finally:
        await layer.aclose()


def test_layers_are_isolated(settings, probe, clock) -> None:
    first = create_data_layer(settings, storage=create_storage(settings), probe=probe, clock=clock)
    second = create_data_layer(settings, storage=create_storage(settings), probe=probe, clock=clock)

    first.feed.set("k", ["x"])

    assert second.feed.get("k") is None
    assert first.single_flight is not second.single_flight
    assert isinstance(first.storage, SqlStorage)


@pytest.mark.asyncio
async def test_get_user_reads_through_cache(layer: DataLayer, backend: Backend) -> None:
    user = await layer.get_user("u1")
    await layer.get_user("u1")

    assert user.username == "ada"
    assert backend.hits == ["GET /users/u1"]
    await layer.aclose()


@pytest.mark.asyncio
async def test_scoped_feeds_hit_their_endpoints(layer: DataLayer, backend: Backend) -> None:
    await layer.following_feed("u1").load_first_page()
    await layer.gallery_feed("u1").load_first_page()

    assert backend.hits == ["GET /feed/u1", "GET /users/u1/photos"]
    assert set(layer.feed.keys()) == {"feed:following:u1:0", "feed:gallery:u1:0"}
    await layer.aclose()
