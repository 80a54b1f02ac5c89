import calendar
import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import cached_property
from uuid import UUID

from route_sync.distance import route_length
from route_sync.formatters import default_route_name

LatLon = tuple[float, float]


class ActivityType(str, Enum):
    WALKING = "walking"
    RUNNING = "running"
    CYCLING = "cycling"
    OTHER = "other"

    @classmethod
    def from_label(cls, label: str | None) -> "ActivityType":
        """Map a provider activity label to an ActivityType.

        Hiking is shown under the walking toggle; unknown labels map to OTHER.
        """
        if not label:
            return cls.OTHER
        return _ACTIVITY_LABELS.get(label.strip().lower(), cls.OTHER)


_ACTIVITY_LABELS = {
    "walk": ActivityType.WALKING,
    "walking": ActivityType.WALKING,
    "hike": ActivityType.WALKING,
    "hiking": ActivityType.WALKING,
    "run": ActivityType.RUNNING,
    "running": ActivityType.RUNNING,
    "ride": ActivityType.CYCLING,
    "bike": ActivityType.CYCLING,
    "biking": ActivityType.CYCLING,
    "cycling": ActivityType.CYCLING,
}

# Activity types that have a visibility toggle and a statistics bucket
TRACKED_TYPES = (ActivityType.WALKING, ActivityType.RUNNING, ActivityType.CYCLING)


@dataclass
class RouteRecord:
    id: UUID
    name: str | None
    activity_type: ActivityType
    start_time: datetime | None
    samples: tuple[LatLon, ...] = ()  # (lat, lon), chronological

    @cached_property
    def distance_m(self) -> float:
        """Great-circle length of the trace in meters."""
        return route_length(self.samples)

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return default_route_name(self.activity_type.value, self.start_time)

    def renamed(self, new_name: str) -> "RouteRecord":
        """Return a copy carrying a new name; the original is left untouched."""
        copy = dataclasses.replace(self, name=new_name)
        # the trace is unchanged, so keep an already computed length
        if "distance_m" in self.__dict__:
            copy.__dict__["distance_m"] = self.__dict__["distance_m"]
        return copy


class SyncInterval(Enum):
    THREE_MONTHS = "3 Months"
    SIX_MONTHS = "6 Months"
    ONE_YEAR = "1 Year"
    ALL = "All Time"

    @property
    def months(self) -> int:
        return _INTERVAL_MONTHS[self]

    def start_for(self, now: datetime) -> datetime:
        """Start of the sync window ending at `now`."""
        return subtract_months(now, self.months)


_INTERVAL_MONTHS = {
    SyncInterval.THREE_MONTHS: 3,
    SyncInterval.SIX_MONTHS: 6,
    SyncInterval.ONE_YEAR: 12,
    SyncInterval.ALL: 120,
}


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back a number of calendar months, clamping the day to the target month."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class FilterCriteria:
    show_walking: bool
    show_running: bool
    show_cycling: bool
    start_date: datetime
    end_date: datetime
    search_text: str = ""

    @classmethod
    def for_interval(
        cls, interval: SyncInterval = SyncInterval.THREE_MONTHS, now: datetime | None = None
    ) -> "FilterCriteria":
        """All activity types visible over the window of a sync interval."""
        if now is None:
            now = datetime.now(timezone.utc)
        return cls(
            show_walking=True,
            show_running=True,
            show_cycling=True,
            start_date=interval.start_for(now),
            end_date=now,
        )

    def shows(self, activity_type: ActivityType) -> bool:
        if activity_type is ActivityType.WALKING:
            return self.show_walking
        if activity_type is ActivityType.RUNNING:
            return self.show_running
        if activity_type is ActivityType.CYCLING:
            return self.show_cycling
        return False

    def covers(self, timestamp: datetime | None) -> bool:
        """True if the timestamp lies inside the inclusive date window."""
        if timestamp is None:
            return False
        return self.start_date <= timestamp <= self.end_date

    def replace(self, **changes) -> "FilterCriteria":
        return dataclasses.replace(self, **changes)

    def with_visibility(self, activity_type: ActivityType, visible: bool) -> "FilterCriteria":
        field = _VISIBILITY_FIELDS.get(activity_type)
        if field is None:
            raise ValueError(f"No visibility toggle for activity type: {activity_type.value}")
        return self.replace(**{field: visible})


_VISIBILITY_FIELDS = {
    ActivityType.WALKING: "show_walking",
    ActivityType.RUNNING: "show_running",
    ActivityType.CYCLING: "show_cycling",
}


@dataclass(frozen=True)
class Viewport:
    center_lat: float
    center_lon: float
    lat_span: float  # degrees
    lon_span: float  # degrees

    def contains(self, lat: float, lon: float) -> bool:
        return (
            abs(lat - self.center_lat) <= self.lat_span / 2
            and abs(lon - self.center_lon) <= self.lon_span / 2
        )


# San Francisco, shown before any route has been fitted
DEFAULT_VIEWPORT = Viewport(center_lat=37.7749, center_lon=-122.4194, lat_span=0.1, lon_span=0.1)
