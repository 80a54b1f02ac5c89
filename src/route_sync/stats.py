"""Aggregate distance statistics over route collections.

All reductions are single passes over the input; per-route length comes from
RouteRecord.distance_m, which is computed once per record.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from route_sync.models import TRACKED_TYPES, ActivityType, RouteRecord, subtract_months


@dataclass(frozen=True)
class AggregateStatistics:
    total_walking_distance: float  # meters
    total_running_distance: float  # meters
    total_cycling_distance: float  # meters
    total_routes: int
    longest_walking_route: RouteRecord | None
    longest_running_route: RouteRecord | None
    longest_cycling_route: RouteRecord | None

    @property
    def total_distance(self) -> float:
        return self.total_walking_distance + self.total_running_distance + self.total_cycling_distance

    def total_for(self, activity_type: ActivityType) -> float:
        if activity_type is ActivityType.WALKING:
            return self.total_walking_distance
        if activity_type is ActivityType.RUNNING:
            return self.total_running_distance
        if activity_type is ActivityType.CYCLING:
            return self.total_cycling_distance
        return 0.0

    def longest_for(self, activity_type: ActivityType) -> RouteRecord | None:
        if activity_type is ActivityType.WALKING:
            return self.longest_walking_route
        if activity_type is ActivityType.RUNNING:
            return self.longest_running_route
        if activity_type is ActivityType.CYCLING:
            return self.longest_cycling_route
        return None

    def share_for(self, activity_type: ActivityType) -> float:
        """Fraction of all recorded distance contributed by one activity type."""
        total = self.total_distance
        if total <= 0:
            return 0.0
        return self.total_for(activity_type) / total


def compute_aggregate_statistics(routes: Iterable[RouteRecord]) -> AggregateStatistics:
    """Reduce routes into per-type totals and the longest route per type.

    A route only displaces the current longest when strictly longer, so the
    first route seen wins an exact tie. OTHER routes are counted but fall in
    no distance bucket.
    """
    totals = {activity: 0.0 for activity in TRACKED_TYPES}
    best: dict[ActivityType, tuple[float, RouteRecord]] = {}
    count = 0

    for route in routes:
        count += 1
        if route.activity_type not in totals:
            continue
        distance = route.distance_m
        totals[route.activity_type] += distance
        current = best.get(route.activity_type)
        if current is None or distance > current[0]:
            best[route.activity_type] = (distance, route)

    def longest(activity: ActivityType) -> RouteRecord | None:
        entry = best.get(activity)
        return entry[1] if entry else None

    return AggregateStatistics(
        total_walking_distance=totals[ActivityType.WALKING],
        total_running_distance=totals[ActivityType.RUNNING],
        total_cycling_distance=totals[ActivityType.CYCLING],
        total_routes=count,
        longest_walking_route=longest(ActivityType.WALKING),
        longest_running_route=longest(ActivityType.RUNNING),
        longest_cycling_route=longest(ActivityType.CYCLING),
    )


@dataclass
class TimeframeTotals:
    """Distance per activity type within one week or month bucket."""
    label: str
    walking: float = 0.0  # meters
    running: float = 0.0
    cycling: float = 0.0

    @property
    def total(self) -> float:
        return self.walking + self.running + self.cycling

    def add(self, route: RouteRecord) -> None:
        if route.activity_type is ActivityType.WALKING:
            self.walking += route.distance_m
        elif route.activity_type is ActivityType.RUNNING:
            self.running += route.distance_m
        elif route.activity_type is ActivityType.CYCLING:
            self.cycling += route.distance_m


def _in_zone(moment: datetime, reference: datetime) -> datetime:
    """Express `moment` in the timezone of `reference` so bucket keys line up."""
    if reference.tzinfo is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(reference.tzinfo)


def _week_start(moment: datetime) -> datetime:
    """Midnight of the ISO week's Monday, keeping the timezone."""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=moment.weekday())


def weekly_totals(routes: Iterable[RouteRecord], now: datetime, weeks: int = 12) -> list[TimeframeTotals]:
    """Distance per type for the last `weeks` ISO weeks, oldest first.

    Labels look like "W26 '25". Routes without a start time are skipped.
    """
    current = _week_start(now)
    starts = [current - timedelta(weeks=offset) for offset in range(weeks - 1, -1, -1)]
    buckets = {}
    for start in starts:
        iso_year, iso_week, _ = start.isocalendar()
        buckets[start] = TimeframeTotals(label=f"W{iso_week} '{iso_year % 100:02d}")

    for route in routes:
        if route.start_time is None:
            continue
        bucket = buckets.get(_week_start(_in_zone(route.start_time, now)))
        if bucket is not None:
            bucket.add(route)

    return [buckets[start] for start in starts]


def monthly_totals(routes: Iterable[RouteRecord], now: datetime, months: int = 12) -> list[TimeframeTotals]:
    """Distance per type for the last `months` calendar months, oldest first.

    Labels look like "Jun '25". Routes without a start time are skipped.
    """
    first_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    starts = [subtract_months(first_of_month, offset) for offset in range(months - 1, -1, -1)]
    buckets = {
        (start.year, start.month): TimeframeTotals(label=f"{start:%b} '{start.year % 100:02d}")
        for start in starts
    }

    for route in routes:
        if route.start_time is None:
            continue
        local = _in_zone(route.start_time, now)
        bucket = buckets.get((local.year, local.month))
        if bucket is not None:
            bucket.add(route)

    return [buckets[(start.year, start.month)] for start in starts]
