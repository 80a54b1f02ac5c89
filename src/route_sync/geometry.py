"""Map viewport fitting for one or many routes.

A lone route gets generous padding so its start and end markers are never
clipped; a multi-route overview is already large, so it gets half as much.
Both paths clamp to a minimum span so very short traces stay at a usable zoom.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from route_sync.models import RouteRecord, Viewport

SINGLE_ROUTE_PADDING = 0.2  # fraction of extent added on each side
MULTI_ROUTE_PADDING = 0.1
MIN_SPAN_DEG = 0.005
DEGENERATE_SPAN_DEG = 0.0005  # stand-in extent for single points and straight N/S or E/W traces


class EmptyRouteError(ValueError):
    """Raised when a viewport is requested for a route without samples."""


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def lat_extent(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def lon_extent(self) -> float:
        return self.max_lon - self.min_lon

    @property
    def center(self) -> tuple[float, float]:
        return (self.min_lat + self.max_lat) / 2, (self.min_lon + self.max_lon) / 2

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            min_lat=min(self.min_lat, other.min_lat),
            max_lat=max(self.max_lat, other.max_lat),
            min_lon=min(self.min_lon, other.min_lon),
            max_lon=max(self.max_lon, other.max_lon),
        )

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


def bounding_box(samples: Sequence[tuple[float, float]]) -> BoundingBox:
    """Minimal rectangle enclosing every (lat, lon) sample.

    Raises:
        EmptyRouteError: If there are no samples.
    """
    if not samples:
        raise EmptyRouteError("Cannot compute bounds of a route without samples")
    lats = [lat for lat, _ in samples]
    lons = [lon for _, lon in samples]
    return BoundingBox(min(lats), max(lats), min(lons), max(lons))


def _padded_viewport(box: BoundingBox, padding: float, min_span: float) -> Viewport:
    lat_extent = box.lat_extent or DEGENERATE_SPAN_DEG
    lon_extent = box.lon_extent or DEGENERATE_SPAN_DEG
    center_lat, center_lon = box.center
    return Viewport(
        center_lat=center_lat,
        center_lon=center_lon,
        lat_span=max(lat_extent * (1 + 2 * padding), min_span),
        lon_span=max(lon_extent * (1 + 2 * padding), min_span),
    )


def fit_route(
    route: RouteRecord,
    padding: float = SINGLE_ROUTE_PADDING,
    min_span: float = MIN_SPAN_DEG,
) -> Viewport:
    """Viewport showing a single route with padding.

    Raises:
        EmptyRouteError: If the route has no samples.
    """
    return _padded_viewport(bounding_box(route.samples), padding, min_span)


def routes_bounds(routes: Iterable[RouteRecord]) -> BoundingBox | None:
    """Union of the bounding boxes of every route with samples, or None."""
    union = None
    for route in routes:
        if not route.samples:
            continue
        box = bounding_box(route.samples)
        union = box if union is None else union.union(box)
    return union


def fit_routes(routes: Iterable[RouteRecord], min_span: float = MIN_SPAN_DEG) -> Viewport | None:
    """Viewport showing every route, or None when there is nothing to show.

    Routes without samples do not contribute. A single remaining route is
    fitted exactly like fit_route.
    """
    drawable = [route for route in routes if route.samples]
    if not drawable:
        return None
    if len(drawable) == 1:
        return fit_route(drawable[0], SINGLE_ROUTE_PADDING, min_span)
    return _padded_viewport(routes_bounds(drawable), MULTI_ROUTE_PADDING, min_span)
