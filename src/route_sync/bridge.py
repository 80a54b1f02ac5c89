"""Mediator that keeps the list and map surfaces on one filter state.

Neither store holds the other: the list side raises events on a SyncBridge and
the host connects those events to whatever map-side object it composed.
"""

import logging
from collections.abc import Callable
from typing import Protocol
from uuid import UUID

from route_sync.models import FilterCriteria

logger = logging.getLogger(__name__)

FILTER_CHANGED = "filter_changed"
ROUTE_SELECTED = "route_selected"
ZOOM_CLEARED = "zoom_cleared"


class MapSink(Protocol):
    def set_filter(self, criteria: FilterCriteria) -> None: ...

    def select_route(self, route_id: UUID) -> None: ...

    def clear_zoom(self) -> None: ...


class SyncBridge:
    """Fire-and-forget event channels between independently owned stores."""

    def __init__(self):
        self._filter_handlers: list[Callable[[FilterCriteria], None]] = []
        self._select_handlers: list[Callable[[UUID], None]] = []
        self._clear_handlers: list[Callable[[], None]] = []
        self._triggers: dict[str, list[Callable[[], None]]] = {}

    def on_filter_change(self, handler: Callable[[FilterCriteria], None]) -> None:
        self._filter_handlers.append(handler)

    def on_route_select(self, handler: Callable[[UUID], None]) -> None:
        self._select_handlers.append(handler)

    def on_clear_zoom(self, handler: Callable[[], None]) -> None:
        self._clear_handlers.append(handler)

    def on_trigger(self, name: str, handler: Callable[[], None]) -> None:
        """Register a navigation trigger unrelated to filtering."""
        self._triggers.setdefault(name, []).append(handler)

    @property
    def is_wired(self) -> bool:
        """True once every data-sync channel has at least one handler."""
        return bool(self._filter_handlers and self._select_handlers and self._clear_handlers)

    def filter_changed(self, criteria: FilterCriteria) -> None:
        if not self._filter_handlers:
            logger.warning("No handler connected for %s", FILTER_CHANGED)
        for handler in self._filter_handlers:
            handler(criteria)

    def route_selected(self, route_id: UUID) -> None:
        if not self._select_handlers:
            logger.warning("No handler connected for %s", ROUTE_SELECTED)
        for handler in self._select_handlers:
            handler(route_id)

    def zoom_cleared(self) -> None:
        if not self._clear_handlers:
            logger.warning("No handler connected for %s", ZOOM_CLEARED)
        for handler in self._clear_handlers:
            handler()

    def trigger(self, name: str) -> None:
        handlers = self._triggers.get(name, [])
        if not handlers:
            logger.warning("No handler connected for trigger %r", name)
        for handler in handlers:
            handler()


def connect_map_store(
    bridge: SyncBridge,
    map_store: MapSink,
    on_dismiss: Callable[[], None] | None = None,
) -> None:
    """Host-side wiring: relay list events into the map store.

    Args:
        bridge: The bridge the list store raises events on
        map_store: Anything with set_filter, select_route and clear_zoom
        on_dismiss: Called after a route is selected, e.g. to hide a modal list
    """
    bridge.on_filter_change(map_store.set_filter)

    def _select(route_id: UUID) -> None:
        map_store.select_route(route_id)
        if on_dismiss is not None:
            on_dismiss()

    bridge.on_route_select(_select)
    bridge.on_clear_zoom(map_store.clear_zoom)
