"""Tests for the durable key/value storage backends."""
from __future__ import annotations

from typing import Iterator

import pytest

from stillnest.database import build_engine, build_session_factory, init_db
from stillnest.services.cache_service import TTLCache
from stillnest.services.storage_service import MemoryStorage, SqlStorage


@pytest.fixture
def sql_storage() -> Iterator[SqlStorage]:
    engine = build_engine("sqlite+pysqlite:///:memory:")
    init_db(engine)
    yield SqlStorage(build_session_factory(engine))
    engine.dispose()


def test_memory_storage_basic_contract() -> None:
    storage = MemoryStorage()
    assert storage.get_item("missing") is None

    storage.set_item("k", "v1")
    storage.set_item("k", "v2")
    assert storage.get_item("k") == "v2"

    storage.remove_item("k")
    storage.remove_item("k")
    assert storage.get_item("k") is None


def test_sql_storage_upserts_and_removes(sql_storage: SqlStorage) -> None:
    assert sql_storage.get_item("stillnest_cache_photos") is None

    sql_storage.set_item("stillnest_cache_photos", "[]")
    sql_storage.set_item("stillnest_cache_photos", '[["k", {}]]')
    assert sql_storage.get_item("stillnest_cache_photos") == '[["k", {}]]'

    sql_storage.remove_item("stillnest_cache_photos")
    assert sql_storage.get_item("stillnest_cache_photos") is None


def test_sql_storage_namespaces_are_independent(sql_storage: SqlStorage) -> None:
    sql_storage.set_item("stillnest_cache_photos", "photos")
    sql_storage.set_item("stillnest_cache_users", "users")

    sql_storage.remove_item("stillnest_cache_photos")

    assert sql_storage.get_item("stillnest_cache_users") == "users"


def test_persisted_cache_survives_reload_via_sql_storage(sql_storage: SqlStorage, clock) -> None:
    first: TTLCache[list[str]] = TTLCache("feed", ttl=60, persist=True, storage=sql_storage, clock=clock)
    first.set("feed:u1:0", ["p1", "p2"])

    second: TTLCache[list[str]] = TTLCache("feed", ttl=60, persist=True, storage=sql_storage, clock=clock)

    assert second.get("feed:u1:0") == ["p1", "p2"]
