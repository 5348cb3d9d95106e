"""Durable key/value storage used to persist client caches between sessions.

Mirrors the browser ``localStorage`` contract: string keys, string values,
synchronous reads and writes. Implementations may raise; callers that need
best-effort durability (the caches) are responsible for swallowing failures.
"""
from __future__ import annotations

from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from ..models import StorageItem


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage; nothing survives a restart."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)


class SqlStorage:
    """Storage rows kept in the ``local_storage`` table.

    Concurrent writers are not coordinated: the last ``set_item`` wins.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_item(self, key: str) -> str | None:
        with self._session_factory() as session:
            return session.scalar(select(StorageItem.value).where(StorageItem.key == key))

    def set_item(self, key: str, value: str) -> None:
        with self._session_factory() as session:
            item = session.get(StorageItem, key)
            if item is None:
                session.add(StorageItem(key=key, value=value))
            else:
                item.value = value
            try:
                session.commit()
            except Exception:
                session.rollback()
                raise

    def remove_item(self, key: str) -> None:
        with self._session_factory() as session:
            session.execute(delete(StorageItem).where(StorageItem.key == key))
            session.commit()


__all__ = ["KeyValueStorage", "MemoryStorage", "SqlStorage"]
