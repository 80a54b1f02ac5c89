"""Route Sync - reactive filter and statistics core for workout route viewers."""

import subprocess
from pathlib import Path

__version_date__ = "2025-07-02"


def get_git_hash() -> str:
    """Short commit hash of the checkout this package was loaded from, or 'unknown'."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=Path(__file__).resolve().parent,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    if result.returncode != 0:
        return "unknown"
    return result.stdout.strip()


def version_string() -> str:
    return f"route-sync {__version_date__} ({get_git_hash()})"
