from datetime import datetime, timezone

from route_sync.formatters import (
    default_route_name,
    format_date,
    format_distance,
    format_distance_imperial,
)


class TestFormatDistance:
    def test_meters(self):
        assert format_distance(800) == "800 m"
        assert format_distance(0) == "0 m"
        assert format_distance(12.34) == "12.3 m"

    def test_kilometers(self):
        assert format_distance(2500) == "2.5 km"
        assert format_distance(1000) == "1 km"
        assert format_distance(42195) == "42.2 km"


class TestFormatDistanceImperial:
    def test_miles(self):
        assert format_distance_imperial(1609.34) == "1.0 mi"
        assert format_distance_imperial(16093.4) == "10.0 mi"

    def test_short_distances_in_feet(self):
        assert format_distance_imperial(30.48) == "100 ft"

    def test_zero(self):
        assert format_distance_imperial(0) == "0.0 mi"


class TestFormatDate:
    def test_medium_style(self):
        assert format_date(datetime(2025, 6, 24, 18, 30, tzinfo=timezone.utc)) == "Jun 24, 2025"
        assert format_date(datetime(2025, 1, 3)) == "Jan 3, 2025"

    def test_none(self):
        assert format_date(None) == ""


class TestDefaultRouteName:
    def test_known_activities(self):
        start = datetime(2025, 6, 24, tzinfo=timezone.utc)
        assert default_route_name("running", start) == "Run on Jun 24"
        assert default_route_name("cycling", start) == "Ride on Jun 24"
        assert default_route_name("walking", start) == "Walk on Jun 24"

    def test_other_activity(self):
        assert default_route_name("other", datetime(2025, 2, 1)) == "Workout on Feb 1"

    def test_without_start_time(self):
        assert default_route_name("running", None) == "Run"
