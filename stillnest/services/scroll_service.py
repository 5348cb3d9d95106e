"""Infinite-scroll trigger driven by intersection of the last rendered item."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IntersectionEntry:
    target: Any
    is_intersecting: bool
    intersection_ratio: float = 0.0


IntersectionCallback = Callable[[Sequence[IntersectionEntry]], None]


class IntersectionObserver(Protocol):
    def observe(self, node: Any) -> None: ...

    def disconnect(self) -> None: ...


ObserverFactory = Callable[[IntersectionCallback, str, float], IntersectionObserver]


class ManualIntersectionObserver:
    """Observer fed by the host UI toolkit, which reports visibility through ``notify``."""

    def __init__(self, callback: IntersectionCallback, root_margin: str = "0px", threshold: float = 0.0) -> None:
        self._callback = callback
        self.root_margin = root_margin
        self.threshold = threshold
        self.targets: list[Any] = []
        self.connected = True

    def observe(self, node: Any) -> None:
        if node not in self.targets:
            self.targets.append(node)

    def disconnect(self) -> None:
        self.targets.clear()
        self.connected = False

    def notify(self, entries: Sequence[IntersectionEntry]) -> None:
        if not self.connected:
            return
        observed = [entry for entry in entries if entry.target in self.targets]
        if observed:
            self._callback(observed)


class InfiniteScrollController:
    """Arms a one-shot "load more" trigger on the last item of a paged list.

    Each call to ``last_element_ref`` replaces the previous observer. Nothing is
    armed while a page is being fetched, so the UI must hand over the new last
    item after every page load for the next trigger.
    """

    def __init__(
        self,
        fetch_next_page: Callable[[], Any],
        *,
        has_next_page: bool = False,
        is_fetching_next_page: bool = False,
        root_margin: str = "100px",
        threshold: float = 0.1,
        observer_factory: ObserverFactory = ManualIntersectionObserver,
    ) -> None:
        self._fetch_next_page = fetch_next_page
        self.has_next_page = has_next_page
        self.is_fetching_next_page = is_fetching_next_page
        self.root_margin = root_margin
        self.threshold = threshold
        self._observer_factory = observer_factory
        self._observer: IntersectionObserver | None = None

    @property
    def observer(self) -> IntersectionObserver | None:
        return self._observer

    def update(self, *, has_next_page: bool | None = None, is_fetching_next_page: bool | None = None) -> None:
        if has_next_page is not None:
            self.has_next_page = has_next_page
        if is_fetching_next_page is not None:
            self.is_fetching_next_page = is_fetching_next_page

    def _handle_intersection(self, entries: Sequence[IntersectionEntry]) -> None:
        if not entries:
            return
        if entries[0].is_intersecting and self.has_next_page and not self.is_fetching_next_page:
            self._fetch_next_page()

    def last_element_ref(self, node: Any) -> None:
        if self.is_fetching_next_page:
            return
        if self._observer is not None:
            self._observer.disconnect()

        self._observer = self._observer_factory(self._handle_intersection, self.root_margin, self.threshold)
        if node is not None:
            self._observer.observe(node)

    def close(self) -> None:
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None


__all__ = [
    "InfiniteScrollController",
    "IntersectionCallback",
    "IntersectionEntry",
    "IntersectionObserver",
    "ManualIntersectionObserver",
    "ObserverFactory",
]
