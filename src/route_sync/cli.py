import argparse
import asyncio
import logging
import sys
from datetime import datetime, time, timezone
from uuid import UUID

from route_sync import version_string
from route_sync.bridge import SyncBridge, connect_map_store
from route_sync.config import Settings, load_settings
from route_sync.formatters import format_date, format_distance, format_distance_imperial
from route_sync.models import TRACKED_TYPES, ActivityType, FilterCriteria, SyncInterval
from route_sync.provider import GpxDirectoryProvider, ProviderError
from route_sync.stats import compute_aggregate_statistics, monthly_totals
from route_sync.store import ListRouteStore, MapRouteStore

INTERVAL_CHOICES = {
    "3m": SyncInterval.THREE_MONTHS,
    "6m": SyncInterval.SIX_MONTHS,
    "1y": SyncInterval.ONE_YEAR,
    "all": SyncInterval.ALL,
}


def build_parser(settings: Settings | None = None) -> argparse.ArgumentParser:
    """Build argument parser with defaults from settings."""
    if settings is None:
        settings = Settings()

    parser = argparse.ArgumentParser(
        description="Load workout routes from a GPX folder, filter them and fit a map viewport."
    )
    parser.add_argument(
        "gpx_dir",
        nargs="?",
        default=str(settings.gpx_dir) if settings.gpx_dir else None,
        help="Directory of .gpx files (default: gpx_dir from config)",
    )
    parser.add_argument(
        "--types",
        default="walking,running,cycling",
        help="Comma-separated activity types to show (default: walking,running,cycling)",
    )
    parser.add_argument(
        "--interval",
        choices=sorted(INTERVAL_CHOICES),
        default=None,
        help=f"Date window ending now (default: {settings.sync_interval.value})",
    )
    parser.add_argument("--since", default=None, help="Window start date (YYYY-MM-DD), overrides --interval")
    parser.add_argument("--until", default=None, help="Window end date (YYYY-MM-DD, inclusive)")
    parser.add_argument("--search", default="", help="Only list routes whose name, distance or date match")
    parser.add_argument("--select", default=None, help="Zoom the map to one route (id or id prefix)")
    parser.add_argument(
        "--imperial",
        action="store_true",
        default=settings.imperial,
        help="Show distances in miles",
    )
    parser.add_argument("--stats", action="store_true", help="Print aggregate statistics")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--version",
        action="version",
        version=version_string(),
    )
    return parser


def parse_types(value: str) -> set[ActivityType]:
    """Parse a comma-separated list of activity types.

    Raises:
        ValueError: If a name is not walking, running or cycling.
    """
    types = set()
    for name in filter(None, (part.strip().lower() for part in value.split(","))):
        activity = ActivityType.from_label(name)
        if activity not in TRACKED_TYPES:
            raise ValueError(f"Unknown activity type: {name}")
        types.add(activity)
    return types


def parse_date(value: str, end_of_day: bool = False) -> datetime:
    """Parse an ISO date or datetime; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _resolve_route_id(value: str, candidates: list) -> UUID | None:
    matches = [route.id for route in candidates if str(route.id).startswith(value.lower())]
    if len(matches) == 1:
        return matches[0]
    return None


async def _run(args: argparse.Namespace, settings: Settings, criteria: FilterCriteria) -> int:
    fmt = format_distance_imperial if args.imperial else format_distance
    provider = GpxDirectoryProvider(args.gpx_dir, settings.simplify_tolerance_m)

    bridge = SyncBridge()
    map_store = MapRouteStore(provider, criteria, debounce_seconds=settings.debounce_seconds)
    list_store = ListRouteStore(provider, bridge, criteria, sync_interval=settings.sync_interval)
    connect_map_store(bridge, map_store)

    results = await asyncio.gather(
        list_store.load(criteria.start_date, criteria.end_date),
        map_store.load(criteria.start_date, criteria.end_date),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, ProviderError):
            print(f"Error loading routes: {result}", file=sys.stderr)
            return 1
        if isinstance(result, BaseException):
            raise result

    list_store.set_filter(criteria)
    map_store.flush()

    if args.select:
        route_id = _resolve_route_id(args.select, list_store.filtered_routes)
        if route_id is None:
            print(f"Error: No single visible route matches id {args.select}", file=sys.stderr)
            return 1
        list_store.select_route(route_id)

    routes = list_store.filtered_routes
    print(f"=== Routes ({len(routes)} of {len(list_store.routes)}) ===")
    for route in routes:
        print(
            f"{str(route.id)[:8]}  {format_date(route.start_time):<13} "
            f"{route.activity_type.value:<8} {fmt(route.distance_m):>9}  {route.display_name}"
        )

    viewport = map_store.viewport
    print("")
    print(f"Map center:     {viewport.center_lat:.5f}, {viewport.center_lon:.5f}")
    print(f"Map span:       {viewport.lat_span:.5f}° lat x {viewport.lon_span:.5f}° lon")
    print(f"Map routes:     {len(map_store.filtered_routes)}")
    if map_store.zoom_target is not None:
        zoomed = map_store.find_route(map_store.zoom_target)
        print(f"Zoomed to:      {zoomed.display_name if zoomed else map_store.zoom_target}")

    if args.stats:
        stats = compute_aggregate_statistics(routes)
        print("")
        print("=== Statistics ===")
        print(f"Routes:         {stats.total_routes}")
        print(f"Total:          {fmt(stats.total_distance)}")
        for activity in TRACKED_TYPES:
            line = f"{activity.value.capitalize() + ':':<15} {fmt(stats.total_for(activity))}"
            longest = stats.longest_for(activity)
            if longest is not None:
                line += f" (longest: {longest.display_name}, {fmt(longest.distance_m)})"
            print(line)
        print("")
        print("=== Monthly ===")
        for bucket in monthly_totals(routes, criteria.end_date):
            if bucket.total > 0:
                print(f"{bucket.label:<8} {fmt(bucket.total):>9}")

    return 0


def main(argv: list[str] | None = None) -> None:
    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error in configuration: {e}", file=sys.stderr)
        sys.exit(1)

    parser = build_parser(settings)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.gpx_dir:
        parser.error("gpx_dir is required (or set gpx_dir in route-sync.json)")

    try:
        types = parse_types(args.types)
        now = datetime.now(timezone.utc)
        interval = INTERVAL_CHOICES[args.interval] if args.interval else settings.sync_interval
        start = parse_date(args.since) if args.since else interval.start_for(now)
        end = parse_date(args.until, end_of_day=True) if args.until else now
    except ValueError as e:
        parser.error(str(e))

    if start > end:
        parser.error(f"--since {start:%Y-%m-%d} is after the window end {end:%Y-%m-%d}")

    settings.sync_interval = interval
    criteria = FilterCriteria(
        show_walking=ActivityType.WALKING in types,
        show_running=ActivityType.RUNNING in types,
        show_cycling=ActivityType.CYCLING in types,
        start_date=start,
        end_date=end,
        search_text=args.search,
    )

    sys.exit(asyncio.run(_run(args, settings, criteria)))
