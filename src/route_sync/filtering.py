"""The filtered-view pipeline shared by the list and map stores.

A pure function of (cache, criteria, zoom target): it has no failure mode and
always yields a possibly empty list ordered newest first.
"""

from collections.abc import Iterable, Mapping
from uuid import UUID

from route_sync.formatters import format_date, format_distance
from route_sync.models import FilterCriteria, RouteRecord


def search_haystack(route: RouteRecord) -> str:
    """Lower-cased text a search query is matched against.

    Only an explicit name takes part; generated names like "Run on Jun 24" do not.
    """
    parts = [route.name, format_distance(route.distance_m), format_date(route.start_time)]
    return " ".join(part for part in parts if part).casefold()


def build_search_index(routes: Iterable[RouteRecord]) -> dict[UUID, str]:
    return {route.id: search_haystack(route) for route in routes}


def matches_search(route: RouteRecord, query: str, index: Mapping[UUID, str] | None = None) -> bool:
    """Case-insensitive substring match of `query`; an empty query matches everything."""
    if not query:
        return True
    haystack = index.get(route.id) if index is not None else None
    if haystack is None:
        haystack = search_haystack(route)
    return query.casefold() in haystack


def filter_routes(
    routes: Iterable[RouteRecord],
    criteria: FilterCriteria,
    *,
    use_search: bool = False,
    search_index: Mapping[UUID, str] | None = None,
    zoom_target: UUID | None = None,
) -> list[RouteRecord]:
    """Apply visibility, date window, optional search and zoom; sort newest first.

    Args:
        routes: The store's cached routes
        criteria: Current filter selection
        use_search: Match criteria.search_text (list surface only)
        search_index: Precomputed haystacks by route id, see build_search_index
        zoom_target: Keep only the route with this id (map surface only)

    Returns:
        Matching routes ordered by start time, most recent first
    """
    kept = []
    for route in routes:
        if not criteria.shows(route.activity_type):
            continue
        if not criteria.covers(route.start_time):
            continue
        if use_search and not matches_search(route, criteria.search_text, search_index):
            continue
        if zoom_target is not None and route.id != zoom_target:
            continue
        kept.append(route)

    # every kept route has a start time, since covers() rejects None
    kept.sort(key=lambda r: r.start_time, reverse=True)
    return kept
