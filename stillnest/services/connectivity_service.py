"""Online/offline state machine backed by active connectivity probes.

Platform-reported connectivity is never trusted on its own when coming back
online: an HTTP probe has to confirm it first. The single exception is the very
first check, which trusts an "online" platform report to avoid flashing offline UI.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]
ConnectivityListener = Callable[["ConnectivityState", "ConnectivityState"], None]

_DEFAULT_CHECK_INTERVAL = 30.0


def format_downtime(seconds: float) -> str:
    total_seconds = int(seconds)
    minutes = total_seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {total_seconds % 60}s"
    return f"{total_seconds}s"


@dataclass(frozen=True, slots=True)
class ConnectivityState:
    is_online: bool = True
    # Session-sticky: set by the first offline transition, never cleared.
    ever_offline: bool = False
    # Transient: set while offline, cleared by a probe-confirmed reconnection.
    is_degraded: bool = False
    last_online_at: float | None = None
    downtime: float = 0.0

    @property
    def is_offline(self) -> bool:
        return not self.is_online

    @property
    def was_offline(self) -> bool:
        return self.ever_offline

    @property
    def downtime_formatted(self) -> str | None:
        return format_downtime(self.downtime) if self.downtime > 0 else None


class ConnectivityMonitor:
    def __init__(
        self,
        probe: Probe,
        *,
        platform_online: Callable[[], bool] = lambda: True,
        check_interval: float = _DEFAULT_CHECK_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._probe = probe
        self._platform_online = platform_online
        self._check_interval = check_interval
        self._clock = clock
        # Start optimistically online.
        self._state = ConnectivityState(last_online_at=clock())
        self._offline_started_at: float | None = None
        self._initialized = False
        self._listeners: list[ConnectivityListener] = []
        self._checker: asyncio.Task[None] | None = None
        self._checker_stop = asyncio.Event()

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state.is_online

    @property
    def is_offline(self) -> bool:
        return self._state.is_offline

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def offline_started_at(self) -> float | None:
        return self._offline_started_at

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register ``listener(previous, current)``; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_state(self, new_state: ConnectivityState) -> None:
        previous = self._state
        if new_state == previous:
            return
        self._state = new_state
        if previous.is_online != new_state.is_online:
            logger.info("Connectivity changed: %s", "online" if new_state.is_online else "offline")
        for listener in list(self._listeners):
            try:
                listener(previous, new_state)
            except Exception:
                logger.exception("Connectivity listener failed")

    def _mark_offline(self) -> None:
        if self._offline_started_at is None:
            self._offline_started_at = self._clock()
        self._set_state(replace(self._state, is_online=False, ever_offline=True, is_degraded=True))

    def _mark_online(self) -> None:
        now = self._clock()
        downtime = now - self._offline_started_at if self._offline_started_at is not None else 0.0
        self._offline_started_at = None
        self._set_state(
            replace(
                self._state,
                is_online=True,
                is_degraded=False,
                last_online_at=now,
                downtime=downtime if self._state.ever_offline else 0.0,
            )
        )

    async def check_connectivity(self) -> bool:
        try:
            return bool(await self._probe())
        except Exception as exc:
            logger.debug("Connectivity probe raised: %r", exc)
            return False

    async def _update(self, platform_online: bool, *, skip_probe: bool = False) -> None:
        if platform_online:
            if skip_probe or await self.check_connectivity():
                self._mark_online()
            else:
                # Platform claims online but the probe disagrees.
                self._mark_offline()
        else:
            self._mark_offline()
        self._initialized = True

    async def handle_online_event(self) -> None:
        await self._update(True)

    async def handle_offline_event(self) -> None:
        await self._update(False)

    async def refresh_connectivity(self) -> ConnectivityState:
        await self._update(self._platform_online())
        return self._state

    async def run_periodic_check(self) -> None:
        if not (self._platform_online() and self._initialized):
            return
        if not await self.check_connectivity() and self._state.is_online:
            await self._update(False)

    async def _check_loop(self) -> None:
        while not self._checker_stop.is_set():
            try:
                await asyncio.wait_for(self._checker_stop.wait(), timeout=self._check_interval)
            except asyncio.TimeoutError:
                try:
                    await self.run_periodic_check()
                except Exception:  # pragma: no cover
                    logger.exception("Periodic connectivity check failed")

    async def start(self) -> None:
        """Run the initial check and schedule periodic probing."""

        platform_online = self._platform_online()
        await self._update(platform_online, skip_probe=platform_online)

        if self._checker is None or self._checker.done():
            self._checker_stop.clear()
            self._checker = asyncio.create_task(self._check_loop())

    async def stop(self) -> None:
        self._checker_stop.set()
        if self._checker is not None:
            try:
                await self._checker
            except asyncio.CancelledError:  # pragma: no cover - loop shutdown
                pass
            self._checker = None


__all__ = [
    "ConnectivityListener",
    "ConnectivityMonitor",
    "ConnectivityState",
    "Probe",
    "format_downtime",
]
