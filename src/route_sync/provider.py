"""Route providers: the external source of workout routes.

Stores depend only on the RouteProvider protocol so they can run against a
GPX folder, an in-memory collection, or a test double.
"""

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol
from uuid import UUID

import gpxpy
import gpxpy.gpx

from route_sync.distance import DEFAULT_SIMPLIFY_TOLERANCE_M, simplify_route
from route_sync.models import ActivityType, RouteRecord

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Fetching routes from the provider failed."""


class RenameError(Exception):
    """The provider rejected a route rename."""


class RouteProvider(Protocol):
    def fetch_routes(self, start: datetime, end: datetime) -> list[RouteRecord]:
        """Routes whose start time falls in [start, end].

        Raises:
            ProviderError: If the routes could not be fetched.
        """
        ...

    def rename_route(self, route_id: UUID, new_name: str) -> None:
        """Persist a user-edited name.

        Raises:
            RenameError: If the rename was rejected.
        """
        ...


def _clean_name(route_id: UUID, new_name: str) -> str:
    name = new_name.strip()
    if not name:
        raise RenameError(f"Route name cannot be blank: {route_id}")
    return name


def _in_window(start_time: datetime | None, start: datetime, end: datetime) -> bool:
    return start_time is not None and start <= start_time <= end


class InMemoryRouteProvider:
    """Serves a fixed collection of routes; renames are kept in memory."""

    def __init__(self, routes: Iterable[RouteRecord] = ()):
        self._routes = list(routes)
        self._names: dict[UUID, str] = {}

    def fetch_routes(self, start: datetime, end: datetime) -> list[RouteRecord]:
        fetched = []
        for route in self._routes:
            if not _in_window(route.start_time, start, end):
                continue
            name = self._names.get(route.id)
            fetched.append(route.renamed(name) if name is not None else route)
        return fetched

    def rename_route(self, route_id: UUID, new_name: str) -> None:
        if not any(route.id == route_id for route in self._routes):
            raise RenameError(f"Unknown route: {route_id}")
        self._names[route_id] = _clean_name(route_id, new_name)


def _as_utc(moment: datetime | None) -> datetime | None:
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class GpxDirectoryProvider:
    """Reads every *.gpx file in a directory, one route per track.

    Route ids are derived from the file path and track index so they stay
    stable across refetches. Samples are thinned with simplify_route.
    """

    def __init__(self, directory: str | Path, simplify_tolerance_m: float = DEFAULT_SIMPLIFY_TOLERANCE_M):
        self.directory = Path(directory)
        self.simplify_tolerance_m = simplify_tolerance_m
        self._names: dict[UUID, str] = {}
        self._known_ids: set[UUID] = set()

    def fetch_routes(self, start: datetime, end: datetime) -> list[RouteRecord]:
        if not self.directory.is_dir():
            raise ProviderError(f"GPX directory not found: {self.directory}")

        routes: list[RouteRecord] = []
        for path in sorted(self.directory.glob("*.gpx")):
            for route in self._read_file(path):
                self._known_ids.add(route.id)
                if _in_window(route.start_time, start, end):
                    routes.append(route)

        logger.debug("Read %d routes from %s", len(routes), self.directory)
        return routes

    def rename_route(self, route_id: UUID, new_name: str) -> None:
        if route_id not in self._known_ids:
            raise RenameError(f"Unknown route: {route_id}")
        self._names[route_id] = _clean_name(route_id, new_name)

    def _read_file(self, path: Path) -> list[RouteRecord]:
        try:
            with path.open("r") as f:
                gpx = gpxpy.parse(f)
        except (OSError, gpxpy.gpx.GPXException) as e:
            raise ProviderError(f"Error reading GPX file {path.name}: {e}") from e

        resolved = path.resolve()
        routes = []
        for index, track in enumerate(gpx.tracks):
            points = [pt for segment in track.segments for pt in segment.points]
            if not points:
                continue

            route_id = uuid.uuid5(uuid.NAMESPACE_URL, f"{resolved.as_uri()}#{index}")
            start_time = next((_as_utc(pt.time) for pt in points if pt.time is not None), None)
            samples = simplify_route([(pt.latitude, pt.longitude) for pt in points], self.simplify_tolerance_m)
            routes.append(
                RouteRecord(
                    id=route_id,
                    name=self._names.get(route_id, track.name or None),
                    activity_type=ActivityType.from_label(track.type),
                    start_time=start_time,
                    samples=tuple(samples),
                )
            )
        return routes
