"""Formatting utilities for display and text search."""

from datetime import datetime

METERS_PER_MILE = 1609.34
FEET_PER_METER = 3.28084

_ACTIVITY_NOUNS = {
    "running": "Run",
    "cycling": "Ride",
    "walking": "Walk",
}


def _trim_decimal(value: float) -> str:
    """Format with at most one fractional digit, dropping a trailing .0."""
    text = f"{value:.1f}"
    if text.endswith(".0"):
        return text[:-2]
    return text


def format_distance(meters: float) -> str:
    """Format meters on a natural scale, e.g. "800 m" or "2.5 km"."""
    if meters < 1000:
        return f"{_trim_decimal(meters)} m"
    return f"{_trim_decimal(meters / 1000)} km"


def format_distance_imperial(meters: float) -> str:
    """Format meters as miles, falling back to feet for very short distances."""
    miles = meters / METERS_PER_MILE
    if 0 < miles < 0.05:
        return f"{meters * FEET_PER_METER:.0f} ft"
    return f"{miles:.1f} mi"


def format_date(moment: datetime | None) -> str:
    """Medium date style, e.g. "Jun 24, 2025". Empty string when unknown."""
    if moment is None:
        return ""
    return f"{moment:%b} {moment.day}, {moment.year}"


def default_route_name(activity: str, start_time: datetime | None) -> str:
    """Generated name for an unnamed route, e.g. "Run on Jun 24"."""
    noun = _ACTIVITY_NOUNS.get(activity, "Workout")
    if start_time is None:
        return noun
    return f"{noun} on {start_time:%b} {start_time.day}"
