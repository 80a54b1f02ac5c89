import math
import threading
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from route_sync.distance import EARTH_RADIUS_M
from route_sync.models import ActivityType, FilterCriteria, RouteRecord
from route_sync.provider import InMemoryRouteProvider, ProviderError

NOW = datetime(2025, 6, 30, 12, 0, 0, tzinfo=timezone.utc)

GPX_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="route-sync tests" xmlns="http://www.topografix.com/GPX/1/1">
{tracks}
</gpx>
"""

TRACK_TEMPLATE = """  <trk>
    <name>{name}</name>
    <type>{type}</type>
    <trkseg>
{points}
    </trkseg>
  </trk>"""

POINT_TEMPLATE = '      <trkpt lat="{lat}" lon="{lon}"><time>{time}</time></trkpt>'


def meridian_samples(meters, lat=37.0, lon=-122.0):
    """Two samples due north of each other, exactly `meters` apart by haversine."""
    return ((lat, lon), (lat + math.degrees(meters / EARTH_RADIUS_M), lon))


def make_route(
    activity=ActivityType.RUNNING,
    start_time=NOW - timedelta(days=1),
    samples=(),
    name=None,
    route_id=None,
):
    return RouteRecord(
        id=route_id or uuid.uuid4(),
        name=name,
        activity_type=activity,
        start_time=start_time,
        samples=tuple(samples),
    )


def gpx_document(tracks):
    """Render GPX text from (name, type, [(lat, lon, datetime), ...]) tuples."""
    rendered = []
    for name, activity, points in tracks:
        lines = "\n".join(
            POINT_TEMPLATE.format(lat=lat, lon=lon, time=t.strftime("%Y-%m-%dT%H:%M:%SZ"))
            for lat, lon, t in points
        )
        rendered.append(TRACK_TEMPLATE.format(name=name, type=activity, points=lines))
    return GPX_TEMPLATE.format(tracks="\n".join(rendered))


class GatedProvider:
    """Provider whose responses, keyed by window start, block until released."""

    def __init__(self, responses):
        self.responses = responses
        self.gates = {start: threading.Event() for start in responses}
        self.renames = []

    def release(self, start):
        self.gates[start].set()

    def fetch_routes(self, start, end):
        self.gates[start].wait(timeout=5)
        response = self.responses[start]
        if isinstance(response, Exception):
            raise response
        return list(response)

    def rename_route(self, route_id, new_name):
        self.renames.append((route_id, new_name))


class FailingProvider:
    def fetch_routes(self, start, end):
        raise ProviderError("provider unavailable")

    def rename_route(self, route_id, new_name):
        pass


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def criteria():
    """Everything visible over the first half of 2025."""
    return FilterCriteria(
        show_walking=True,
        show_running=True,
        show_cycling=True,
        start_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        end_date=NOW,
    )


@pytest.fixture
def sample_routes():
    """One route per tracked activity plus an OTHER, newest first by day."""
    return [
        make_route(ActivityType.RUNNING, NOW - timedelta(days=1), meridian_samples(5000), name="Morning Run"),
        make_route(ActivityType.CYCLING, NOW - timedelta(days=3), meridian_samples(20000, lon=-121.9)),
        make_route(ActivityType.WALKING, NOW - timedelta(days=5), meridian_samples(800, lat=37.1), name="Dog walk"),
        make_route(ActivityType.OTHER, NOW - timedelta(days=7), meridian_samples(300)),
    ]


@pytest.fixture
def provider(sample_routes):
    return InMemoryRouteProvider(sample_routes)


@pytest.fixture
def failing_provider():
    return FailingProvider()


@pytest.fixture
def gpx_dir(tmp_path):
    """Directory with two GPX files: a run and a two-track file (ride and hike)."""
    base = datetime(2025, 6, 20, 7, 0, 0, tzinfo=timezone.utc)
    run_points = [(37.7749 + i * 0.001, -122.4194, base + timedelta(seconds=30 * i)) for i in range(5)]
    ride_points = [(37.80, -122.40 + i * 0.002, base + timedelta(days=2, seconds=20 * i)) for i in range(4)]
    hike_points = [(37.90 + i * 0.0005, -122.50, base + timedelta(days=4, seconds=60 * i)) for i in range(3)]

    (tmp_path / "run.gpx").write_text(gpx_document([("Lake loop", "running", run_points)]))
    (tmp_path / "weekend.gpx").write_text(
        gpx_document([
            ("Coast ride", "cycling", ride_points),
            ("Ridge hike", "hiking", hike_points),
        ])
    )
    (tmp_path / "notes.txt").write_text("not a gpx file")
    return tmp_path
