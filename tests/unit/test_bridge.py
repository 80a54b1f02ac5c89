import logging
import uuid

import pytest

from route_sync.bridge import SyncBridge, connect_map_store


class RecordingMap:
    def __init__(self):
        self.calls = []

    def set_filter(self, criteria):
        self.calls.append(("set_filter", criteria))

    def select_route(self, route_id):
        self.calls.append(("select_route", route_id))

    def clear_zoom(self):
        self.calls.append(("clear_zoom",))


class TestSyncBridge:
    def test_not_wired_by_default(self):
        assert not SyncBridge().is_wired

    def test_emit_without_handlers_logs_warning(self, criteria, caplog):
        bridge = SyncBridge()
        with caplog.at_level(logging.WARNING, logger="route_sync.bridge"):
            bridge.filter_changed(criteria)
            bridge.route_selected(uuid.uuid4())
            bridge.zoom_cleared()
        assert caplog.text.count("No handler connected") == 3

    def test_handlers_called_in_order(self, criteria):
        bridge = SyncBridge()
        calls = []
        bridge.on_filter_change(lambda c: calls.append(("first", c)))
        bridge.on_filter_change(lambda c: calls.append(("second", c)))
        bridge.filter_changed(criteria)
        assert calls == [("first", criteria), ("second", criteria)]

    def test_handler_errors_propagate(self):
        bridge = SyncBridge()

        def broken():
            raise RuntimeError("boom")

        bridge.on_clear_zoom(broken)
        with pytest.raises(RuntimeError, match="boom"):
            bridge.zoom_cleared()

    def test_named_triggers(self, caplog):
        bridge = SyncBridge()
        opened = []
        bridge.on_trigger("show_stats", lambda: opened.append("stats"))
        bridge.trigger("show_stats")
        assert opened == ["stats"]
        bridge.trigger("show_settings")
        assert "show_settings" in caplog.text


class TestConnectMapStore:
    def test_relays_every_channel(self, criteria):
        bridge = SyncBridge()
        map_store = RecordingMap()
        connect_map_store(bridge, map_store)
        assert bridge.is_wired

        route_id = uuid.uuid4()
        bridge.filter_changed(criteria)
        bridge.route_selected(route_id)
        bridge.zoom_cleared()
        assert map_store.calls == [
            ("set_filter", criteria),
            ("select_route", route_id),
            ("clear_zoom",),
        ]

    def test_dismiss_after_select(self):
        bridge = SyncBridge()
        map_store = RecordingMap()
        order = []
        connect_map_store(bridge, map_store, on_dismiss=lambda: order.append(len(map_store.calls)))
        bridge.route_selected(uuid.uuid4())
        assert order == [1]
