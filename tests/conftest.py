"""Shared fixtures: deterministic clock, in-memory storage, scripted probes."""
from __future__ import annotations

import os

os.environ.setdefault("STORAGE_DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest  # noqa: E402

from stillnest.services.storage_service import MemoryStorage  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class ScriptedProbe:
    """Probe whose answer is set by the test; counts invocations."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        return self.result


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1_000.0)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def probe() -> ScriptedProbe:
    return ScriptedProbe()
