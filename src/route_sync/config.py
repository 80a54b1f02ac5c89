"""Configuration loading for route-sync.

Merges config from global and local JSON files, then environment variables:
1. ~/.config/route-sync/route-sync.json (global, loaded first)
2. ./route-sync.json (local, overrides global)
3. ROUTE_SYNC_GPX_DIR, ROUTE_SYNC_DEBOUNCE_MS, ROUTE_SYNC_UNITS (override both)

Example config file:
    {
        "gpx_dir": "~/Workouts",
        "debounce_ms": 300,
        "simplify_tolerance_m": 10,
        "sync_interval": "6 Months",
        "units": "imperial"
    }
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from route_sync.distance import DEFAULT_SIMPLIFY_TOLERANCE_M
from route_sync.models import SyncInterval
from route_sync.store import DEFAULT_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "route-sync"
CONFIG_PATH = CONFIG_DIR / "route-sync.json"
LOCAL_CONFIG_PATH = Path("route-sync.json")

UNITS = ("metric", "imperial")


@dataclass
class Settings:
    gpx_dir: Path | None = None
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    simplify_tolerance_m: float = DEFAULT_SIMPLIFY_TOLERANCE_M
    sync_interval: SyncInterval = SyncInterval.THREE_MONTHS
    units: str = "metric"

    @property
    def imperial(self) -> bool:
        return self.units == "imperial"


def _load_config(paths: list[Path] | None = None) -> dict:
    """Load and merge JSON config files, later files overriding earlier ones.

    Missing or malformed files are skipped.
    """
    if paths is None:
        paths = [CONFIG_PATH, LOCAL_CONFIG_PATH]
    config = {}
    for config_path in paths:
        if config_path.exists():
            try:
                with config_path.open() as f:
                    config.update(json.load(f))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Skipping unreadable config %s: %s", config_path, e)
                continue
    return config


def _parse_interval(value: str) -> SyncInterval:
    for interval in SyncInterval:
        if value in (interval.value, interval.name, interval.name.lower()):
            return interval
    raise ValueError(f"Unknown sync interval: {value}")


def load_settings(paths: list[Path] | None = None, environ: dict[str, str] | None = None) -> Settings:
    """Build Settings from config files and environment variables.

    Raises:
        ValueError: If a value is present but invalid.
    """
    config = _load_config(paths)
    if environ is None:
        environ = dict(os.environ)

    settings = Settings()

    gpx_dir = environ.get("ROUTE_SYNC_GPX_DIR") or config.get("gpx_dir")
    if gpx_dir:
        settings.gpx_dir = Path(gpx_dir).expanduser()

    debounce_ms = environ.get("ROUTE_SYNC_DEBOUNCE_MS") or config.get("debounce_ms")
    if debounce_ms is not None:
        settings.debounce_seconds = max(0.0, float(debounce_ms) / 1000)

    if "simplify_tolerance_m" in config:
        settings.simplify_tolerance_m = float(config["simplify_tolerance_m"])

    if "sync_interval" in config:
        settings.sync_interval = _parse_interval(str(config["sync_interval"]))

    units = environ.get("ROUTE_SYNC_UNITS") or config.get("units")
    if units:
        if units not in UNITS:
            raise ValueError(f"Unknown units: {units} (expected one of {', '.join(UNITS)})")
        settings.units = units

    return settings
