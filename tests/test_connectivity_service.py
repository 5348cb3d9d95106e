"""Tests for the connectivity state machine."""
from __future__ import annotations

import asyncio

import pytest

from stillnest.services.connectivity_service import ConnectivityMonitor, ConnectivityState, format_downtime


class PlatformStatus:
    def __init__(self, online: bool = True) -> None:
        self.online = online

    def __call__(self) -> bool:
        return self.online


def test_initial_state_is_optimistically_online(probe, clock) -> None:
    monitor = ConnectivityMonitor(probe, clock=clock)

    assert monitor.is_online is True
    assert monitor.is_offline is False
    assert monitor.state.last_online_at == clock.now
    assert monitor.state.was_offline is False
    assert monitor.is_initialized is False


@pytest.mark.asyncio
async def test_first_check_trusts_online_platform_without_probing(probe, clock) -> None:
    probe.result = False
    monitor = ConnectivityMonitor(probe, platform_online=PlatformStatus(True), clock=clock)

    await monitor.start()
    try:
        assert monitor.is_online is True
        assert probe.calls == 0
        assert monitor.is_initialized is True
    finally:
        await monitor.stop()


@pytest.mark.asyncio
async def test_first_check_with_offline_platform_marks_offline(probe, clock) -> None:
    monitor = ConnectivityMonitor(probe, platform_online=PlatformStatus(False), clock=clock)

    await monitor.start()
    try:
        assert monitor.is_offline is True
        assert monitor.offline_started_at == clock.now
    finally:
        await monitor.stop()


@pytest.mark.asyncio
async def test_offline_event_transitions_immediately(probe, clock) -> None:
    monitor = ConnectivityMonitor(probe, clock=clock)

    await monitor.handle_offline_event()

    state = monitor.state
    assert state.is_offline and not state.is_online
    assert state.was_offline is True
    assert state.ever_offline is True
    assert state.is_degraded is True
    assert probe.calls == 0


@pytest.mark.asyncio
async def test_online_event_is_verified_by_probe(probe, clock) -> None:
    monitor = ConnectivityMonitor(probe, clock=clock)
    await monitor.handle_offline_event()
    offline_since = monitor.offline_started_at

    probe.result = False
    clock.advance(3)
    await monitor.handle_online_event()

    assert probe.calls == 1
    assert monitor.is_offline is True
    # The first offline start is kept.
    assert monitor.offline_started_at == offline_since


@pytest.mark.asyncio
async def test_probe_failure_with_platform_online_reports_offline(probe, clock) -> None:
    probe.result = False
    monitor = ConnectivityMonitor(probe, platform_online=PlatformStatus(True), clock=clock)

    state = await monitor.refresh_connectivity()

    assert state.is_offline is True
    assert monitor.offline_started_at == clock.now


@pytest.mark.asyncio
async def test_reconnection_records_downtime(probe, clock) -> None:
    monitor = ConnectivityMonitor(probe, clock=clock)
    await monitor.handle_offline_event()
    clock.advance(5)
    await monitor.handle_offline_event()  # repeated event keeps the first start time

    clock.advance(70)
    await monitor.handle_online_event()

    state = monitor.state
    assert state.is_online is True
    assert state.downtime == pytest.approx(75)
    assert state.downtime_formatted == "1m 15s"
    assert state.last_online_at == clock.now
    assert state.is_degraded is False
    assert state.was_offline is True
    assert monitor.offline_started_at is None


@pytest.mark.asyncio
async def test_downtime_is_zero_when_never_offline(probe, clock) -> None:
    monitor = ConnectivityMonitor(probe, clock=clock)

    await monitor.handle_online_event()

    assert monitor.state.downtime == 0
    assert monitor.state.downtime_formatted is None


@pytest.mark.asyncio
async def test_probe_exceptions_count_as_disconnected(clock) -> None:
    async def _broken_probe() -> bool:
        raise TimeoutError("probe timed out")

    monitor = ConnectivityMonitor(_broken_probe, clock=clock)

    assert await monitor.check_connectivity() is False
    await monitor.handle_online_event()
    assert monitor.is_offline is True


@pytest.mark.asyncio
async def test_periodic_check_marks_offline_when_probe_fails(probe, clock) -> None:
    platform = PlatformStatus(True)
    monitor = ConnectivityMonitor(probe, platform_online=platform, clock=clock)
    await monitor.refresh_connectivity()
    assert monitor.is_online

    probe.result = False
    await monitor.run_periodic_check()

    assert monitor.is_offline is True


@pytest.mark.asyncio
async def test_periodic_check_skips_when_platform_offline_or_uninitialised(probe, clock) -> None:
    platform = PlatformStatus(True)
    monitor = ConnectivityMonitor(probe, platform_online=platform, clock=clock)

    await monitor.run_periodic_check()
    assert probe.calls == 0

    platform.online = False
    await monitor.refresh_connectivity()
    await monitor.run_periodic_check()
    assert probe.calls == 0


@pytest.mark.asyncio
async def test_periodic_task_runs_on_interval(probe, clock) -> None:
    platform = PlatformStatus(True)
    monitor = ConnectivityMonitor(probe, platform_online=platform, check_interval=0.01, clock=clock)
    await monitor.start()
    probe.result = False

    for _ in range(100):
        if monitor.is_offline:
            break
        await asyncio.sleep(0.01)
    await monitor.stop()

    assert monitor.is_offline is True


@pytest.mark.asyncio
async def test_listeners_receive_transitions(probe, clock) -> None:
    monitor = ConnectivityMonitor(probe, clock=clock)
    seen: list[tuple[bool, bool]] = []
    unsubscribe = monitor.subscribe(lambda prev, cur: seen.append((prev.is_online, cur.is_online)))

    await monitor.handle_offline_event()
    await monitor.handle_online_event()
    unsubscribe()
    await monitor.handle_offline_event()

    assert seen == [(True, False), (False, True)]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_monitor(probe, clock) -> None:
    monitor = ConnectivityMonitor(probe, clock=clock)

    def _boom(prev: ConnectivityState, cur: ConnectivityState) -> None:
        raise RuntimeError("listener bug")

    monitor.subscribe(_boom)
    await monitor.handle_offline_event()

    assert monitor.is_offline is True


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0s"), (42.9, "42s"), (61, "1m 1s"), (3600, "1h 0m"), (3 * 3600 + 25 * 60 + 7, "3h 25m")],
)
def test_format_downtime(seconds: float, expected: str) -> None:
    assert format_downtime(seconds) == expected
