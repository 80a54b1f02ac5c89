"""Route stores backing the list and map surfaces.

Each store privately owns its route cache and filter state and republishes a
filtered view when either changes. All mutation happens on the asyncio event
loop; only the provider fetch runs on an executor thread.
"""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import Executor
from datetime import datetime, timezone
from uuid import UUID

from route_sync.bridge import SyncBridge
from route_sync.debounce import Debouncer
from route_sync.filtering import build_search_index, filter_routes
from route_sync.geometry import EmptyRouteError, fit_route, fit_routes
from route_sync.models import (
    DEFAULT_VIEWPORT,
    ActivityType,
    FilterCriteria,
    RouteRecord,
    SyncInterval,
    Viewport,
)
from route_sync.provider import ProviderError, RenameError, RouteProvider

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

Listener = Callable[["RouteStore"], None]


class RouteStore:
    """Cache of routes for the active date window plus its filtered view.

    The view is recomputed from the dependency key (cache version, criteria,
    zoom target); an unchanged key skips the work unless forced.
    """

    def __init__(
        self,
        provider: RouteProvider,
        criteria: FilterCriteria | None = None,
        *,
        executor: Executor | None = None,
    ):
        self._provider = provider
        self._executor = executor
        self._criteria = criteria if criteria is not None else FilterCriteria.for_interval()
        self._cache: list[RouteRecord] = []
        self._cache_version = 0
        self._filtered: list[RouteRecord] = []
        self._last_key: tuple | None = None
        self._recompute_count = 0
        self._request_seq = 0
        self._applied_seq = 0
        self._in_flight = 0
        self._last_error: Exception | None = None
        self._listeners: list[Listener] = []

    @property
    def filtered_routes(self) -> list[RouteRecord]:
        return list(self._filtered)

    @property
    def routes(self) -> list[RouteRecord]:
        """Every cached route, unfiltered."""
        return list(self._cache)

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def cache_version(self) -> int:
        return self._cache_version

    @property
    def recompute_count(self) -> int:
        return self._recompute_count

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(store)` after every republish. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def find_route(self, route_id: UUID) -> RouteRecord | None:
        return next((route for route in self._cache if route.id == route_id), None)

    async def load(self, start: datetime, end: datetime) -> bool:
        """Fetch routes for [start, end] and replace the cache.

        Overlapping loads are allowed; a response older than the last applied
        one is discarded so stale data never overwrites fresher data.

        Returns:
            True if the response was applied, False if it was discarded.

        Raises:
            ProviderError: If the most recently issued request failed. The
                cache is kept. Failures of older requests are discarded.
        """
        self._request_seq += 1
        seq = self._request_seq
        self._in_flight += 1
        self._publish()

        loop = asyncio.get_running_loop()
        try:
            routes = await loop.run_in_executor(self._executor, self._provider.fetch_routes, start, end)
        except ProviderError as e:
            if seq < self._request_seq:
                logger.debug(
                    "Ignoring failure of superseded request #%d (latest #%d): %s", seq, self._request_seq, e
                )
                return False
            self._last_error = e
            logger.warning("Route fetch failed, keeping %d cached routes: %s", len(self._cache), e)
            raise
        else:
            if seq < self._applied_seq:
                logger.debug("Discarding stale response #%d (already applied #%d)", seq, self._applied_seq)
                return False
            self._applied_seq = seq
            self._last_error = None
            self._cache = list(routes)
            self._cache_version += 1
            self._on_cache_changed()
            self._recompute()
            logger.debug("Loaded %d routes (request #%d)", len(self._cache), seq)
            return True
        finally:
            self._in_flight -= 1
            self._publish()

    def set_filter(self, criteria: FilterCriteria) -> None:
        self._criteria = criteria
        self._recompute()
        self._publish()

    def rename_route(self, route_id: UUID, new_name: str) -> None:
        """Rename a route through the provider, then echo it into the cache.

        Raises:
            RenameError: If the route is not loaded or the provider rejected
                the name. The cached name is left unchanged.
        """
        route = self.find_route(route_id)
        if route is None:
            error = RenameError(f"Route not loaded: {route_id}")
            self._last_error = error
            raise error
        try:
            self._provider.rename_route(route_id, new_name)
        except RenameError as e:
            self._last_error = e
            logger.warning("Rename of %s rejected, keeping %r: %s", route_id, route.name, e)
            raise

        self._cache = [r.renamed(new_name.strip()) if r.id == route_id else r for r in self._cache]
        self._cache_version += 1
        self._on_cache_changed()
        self._recompute()
        self._publish()

    def _zoom_target_key(self) -> UUID | None:
        return None

    def _derive(self) -> list[RouteRecord]:
        return filter_routes(self._cache, self._criteria)

    def _on_cache_changed(self) -> None:
        pass

    def _after_recompute(self) -> None:
        pass

    def _recompute(self, force: bool = False) -> bool:
        key = (self._cache_version, self._criteria, self._zoom_target_key())
        if not force and key == self._last_key:
            return False
        self._last_key = key
        self._filtered = self._derive()
        self._recompute_count += 1
        logger.debug(
            "%s recomputed: %d of %d routes visible",
            type(self).__name__, len(self._filtered), len(self._cache),
        )
        self._after_recompute()
        return True

    def _publish(self) -> None:
        for listener in list(self._listeners):
            listener(self)


class ListRouteStore(RouteStore):
    """Store for the list surface: text search, sync window, selection, renaming.

    Filter changes apply immediately and are raised on the bridge after every
    set_filter call.
    """

    def __init__(
        self,
        provider: RouteProvider,
        bridge: SyncBridge,
        criteria: FilterCriteria | None = None,
        *,
        sync_interval: SyncInterval = SyncInterval.THREE_MONTHS,
        executor: Executor | None = None,
    ):
        if criteria is None:
            criteria = FilterCriteria.for_interval(sync_interval)
        super().__init__(provider, criteria, executor=executor)
        self._bridge = bridge
        self._sync_interval = sync_interval
        self._search_index: dict[UUID, str] = {}
        self._is_searching = False
        self._selected_route_id: UUID | None = None
        self._editing_route_id: UUID | None = None
        self.editing_name = ""

    @property
    def sync_interval(self) -> SyncInterval:
        return self._sync_interval

    @property
    def is_searching(self) -> bool:
        return self._is_searching

    @property
    def selected_route(self) -> RouteRecord | None:
        if self._selected_route_id is None:
            return None
        return self.find_route(self._selected_route_id)

    @property
    def editing_route_id(self) -> UUID | None:
        return self._editing_route_id

    def set_filter(self, criteria: FilterCriteria) -> None:
        super().set_filter(criteria)
        self._bridge.filter_changed(criteria)

    def set_visibility(self, activity_type: ActivityType, visible: bool) -> None:
        self.set_filter(self._criteria.with_visibility(activity_type, visible))

    def toggle(self, activity_type: ActivityType) -> None:
        self.set_visibility(activity_type, not self._criteria.shows(activity_type))

    def set_search_text(self, text: str) -> None:
        self.set_filter(self._criteria.replace(search_text=text))

    def set_date_range(self, start: datetime, end: datetime) -> None:
        if start > end:
            raise ValueError(f"Start date {start} is after end date {end}")
        self.set_filter(self._criteria.replace(start_date=start, end_date=end))

    def set_sync_interval(self, interval: SyncInterval, now: datetime | None = None) -> None:
        """Move the date window to the interval ending now.

        The host is expected to call refresh() afterwards to fetch the wider window.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        self._sync_interval = interval
        self.set_filter(self._criteria.replace(start_date=interval.start_for(now), end_date=now))

    async def refresh(self) -> bool:
        """Load the current criteria's date window."""
        return await self.load(self._criteria.start_date, self._criteria.end_date)

    def begin_search(self) -> None:
        self._is_searching = True
        self._publish()

    def end_search(self) -> None:
        self._is_searching = False
        self._publish()

    def select_route(self, route_id: UUID) -> None:
        self._selected_route_id = route_id
        self._publish()
        self._bridge.route_selected(route_id)

    def clear_selection(self) -> None:
        self._selected_route_id = None
        self._publish()
        self._bridge.zoom_cleared()

    def begin_editing(self, route_id: UUID) -> None:
        route = self.find_route(route_id)
        if route is None:
            raise KeyError(route_id)
        self._editing_route_id = route_id
        self.editing_name = route.name or ""
        self._publish()

    def cancel_editing(self) -> None:
        self._editing_route_id = None
        self.editing_name = ""
        self._publish()

    def commit_editing(self) -> bool:
        """Save editing_name through rename_route.

        On rejection the field reverts to the last known-good name and the
        edit stays open. Returns True if the rename was saved.
        """
        route_id = self._editing_route_id
        if route_id is None:
            return False
        route = self.find_route(route_id)
        previous_name = route.name if route is not None and route.name else ""
        try:
            self.rename_route(route_id, self.editing_name)
        except RenameError:
            self.editing_name = previous_name
            self._publish()
            return False
        self._editing_route_id = None
        self.editing_name = ""
        self._publish()
        return True

    def _derive(self) -> list[RouteRecord]:
        return filter_routes(self._cache, self._criteria, use_search=True, search_index=self._search_index)

    def _on_cache_changed(self) -> None:
        # one haystack per route per cache version, not per keystroke
        self._search_index = build_search_index(self._cache)


class MapRouteStore(RouteStore):
    """Store for the map surface: debounced filtering, zoom target and viewport.

    Search text is ignored here. Filter changes are coalesced with a trailing
    debounce so a burst of toggles yields one recomputation and refit.
    """

    def __init__(
        self,
        provider: RouteProvider,
        criteria: FilterCriteria | None = None,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        executor: Executor | None = None,
        viewport: Viewport = DEFAULT_VIEWPORT,
    ):
        super().__init__(provider, criteria, executor=executor)
        self._zoom_target: UUID | None = None
        self._viewport = viewport
        self._pending_criteria: FilterCriteria | None = None
        self._drop_zoom_on_apply = False
        self._debouncer = Debouncer(debounce_seconds, self._apply_pending_criteria)

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    current_viewport = viewport

    @property
    def zoom_target(self) -> UUID | None:
        return self._zoom_target

    @property
    def pending_criteria(self) -> FilterCriteria | None:
        return self._pending_criteria

    def set_filter(self, criteria: FilterCriteria) -> None:
        """Schedule new criteria.

        A new filter also drops any zoom target. The drop is applied with the
        criteria when the debounce settles, so the published zoom target,
        view and viewport stay consistent in the meantime.
        """
        self._pending_criteria = criteria
        self._drop_zoom_on_apply = True
        self._debouncer.trigger()

    def flush(self) -> bool:
        """Apply a pending filter change now. Returns False if none was pending."""
        return self._debouncer.flush()

    def dispose(self) -> None:
        """Drop any pending filter change without applying it."""
        self._debouncer.cancel()
        self._pending_criteria = None
        self._drop_zoom_on_apply = False

    def select_route(self, route_id: UUID) -> None:
        """Zoom to one route; the view is empty if it is not currently visible."""
        self._zoom_target = route_id
        self._drop_zoom_on_apply = False
        self._recompute()
        self._publish()

    def clear_zoom(self) -> None:
        self._zoom_target = None
        self._drop_zoom_on_apply = False
        self._recompute()
        self._publish()

    def _apply_pending_criteria(self) -> None:
        if self._drop_zoom_on_apply:
            self._zoom_target = None
            self._drop_zoom_on_apply = False
        if self._pending_criteria is not None:
            self._criteria = self._pending_criteria
            self._pending_criteria = None
        self._recompute(force=True)
        self._publish()

    def _zoom_target_key(self) -> UUID | None:
        return self._zoom_target

    def _derive(self) -> list[RouteRecord]:
        return filter_routes(self._cache, self._criteria, zoom_target=self._zoom_target)

    def _after_recompute(self) -> None:
        if self._zoom_target is not None:
            if self._filtered:
                self._fit_single(self._filtered[0])
            return

        viewport = fit_routes(self._filtered)
        if viewport is not None:
            self._viewport = viewport

    def _fit_single(self, route: RouteRecord) -> None:
        try:
            self._viewport = fit_route(route)
        except EmptyRouteError:
            logger.debug("Route %s has no samples, keeping current viewport", route.id)
