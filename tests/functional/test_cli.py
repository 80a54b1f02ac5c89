import os
import subprocess
import sys
from datetime import datetime, timezone

import pytest

from route_sync.provider import GpxDirectoryProvider

SRC_DIR = os.path.join(os.path.dirname(__file__), os.pardir, os.pardir, "src")
WINDOW = ["--since", "2025-01-01", "--until", "2025-12-31"]


@pytest.fixture
def run_cli(tmp_path):
    """Run the CLI in a clean working directory with no user config."""
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [os.path.abspath(SRC_DIR), env.get("PYTHONPATH")]))
    for name in ("ROUTE_SYNC_GPX_DIR", "ROUTE_SYNC_DEBOUNCE_MS", "ROUTE_SYNC_UNITS"):
        env.pop(name, None)

    def run(*args, extra_env=None):
        return subprocess.run(
            [sys.executable, "-m", "route_sync", *args],
            capture_output=True,
            text=True,
            cwd=tmp_path,
            env={**env, **(extra_env or {})},
        )

    return run


class TestCli:
    def test_lists_routes_and_viewport(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), *WINDOW)
        assert result.returncode == 0, result.stderr
        output = result.stdout
        assert "=== Routes (3 of 3) ===" in output
        assert "Lake loop" in output
        assert "Coast ride" in output
        assert "Ridge hike" in output
        assert "Map center:" in output
        assert "Map span:" in output
        assert "Map routes:     3" in output
        # newest first
        assert output.index("Ridge hike") < output.index("Coast ride") < output.index("Lake loop")

    def test_filter_by_type(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), *WINDOW, "--types", "running")
        assert result.returncode == 0, result.stderr
        assert "=== Routes (1 of 3) ===" in result.stdout
        assert "Coast ride" not in result.stdout

    def test_search(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), *WINDOW, "--search", "RIDGE")
        assert result.returncode == 0, result.stderr
        assert "=== Routes (1 of 3) ===" in result.stdout
        # the map ignores search text
        assert "Map routes:     3" in result.stdout

    def test_date_window(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), "--since", "2025-06-21", "--until", "2025-06-22")
        assert result.returncode == 0, result.stderr
        assert "=== Routes (1 of 1) ===" in result.stdout
        assert "Coast ride" in result.stdout

    def test_select_zooms_map(self, run_cli, gpx_dir):
        routes = GpxDirectoryProvider(gpx_dir).fetch_routes(
            datetime(2025, 1, 1, tzinfo=timezone.utc), datetime(2025, 12, 31, tzinfo=timezone.utc)
        )
        lake_loop = next(r for r in routes if r.name == "Lake loop")
        result = run_cli(str(gpx_dir), *WINDOW, "--select", str(lake_loop.id)[:8])
        assert result.returncode == 0, result.stderr
        assert "Zoomed to:      Lake loop" in result.stdout
        assert "Map routes:     1" in result.stdout

    def test_stats(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), *WINDOW, "--stats")
        assert result.returncode == 0, result.stderr
        assert "=== Statistics ===" in result.stdout
        assert "Routes:         3" in result.stdout
        assert "(longest: Lake loop" in result.stdout
        assert "=== Monthly ===" in result.stdout
        assert "Jun '25" in result.stdout

    def test_imperial(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), *WINDOW, "--imperial")
        assert result.returncode == 0, result.stderr
        assert " mi " in result.stdout

    def test_gpx_dir_from_environment(self, run_cli, gpx_dir):
        result = run_cli(*WINDOW, extra_env={"ROUTE_SYNC_GPX_DIR": str(gpx_dir)})
        assert result.returncode == 0, result.stderr
        assert "=== Routes (3 of 3) ===" in result.stdout

    def test_missing_directory(self, run_cli, tmp_path):
        result = run_cli(str(tmp_path / "nope"), *WINDOW)
        assert result.returncode == 1
        assert "Error loading routes" in result.stderr

    def test_unknown_route_id(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), *WINDOW, "--select", "zzzz")
        assert result.returncode == 1
        assert "Error" in result.stderr

    def test_unknown_activity_type(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), "--types", "swimming")
        assert result.returncode == 2
        assert "Unknown activity type" in result.stderr

    def test_inverted_window(self, run_cli, gpx_dir):
        result = run_cli(str(gpx_dir), "--since", "2025-06-01", "--until", "2025-05-01")
        assert result.returncode == 2

    def test_version(self, run_cli):
        result = run_cli("--version")
        assert result.returncode == 0
        assert "route-sync" in result.stdout
