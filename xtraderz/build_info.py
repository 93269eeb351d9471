"""Information about the build: source revision, build time and interpreter version."""

from __future__ import annotations

import platform
import subprocess
from datetime import datetime, timezone

UNKNOWN = "unknown"


def get_git_hash() -> str:
    """Short hash of the checked-out revision, or ``"unknown"`` if git cannot tell."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            check=False,
        )
    except OSError:
        return UNKNOWN
    if result.returncode != 0:
        return UNKNOWN
    return result.stdout.decode("utf-8", errors="replace").strip()


def build_info() -> dict[str, str]:
    """Revision, current UTC time in RFC 3339 and the interpreter version."""
    return {
        "git_hash": get_git_hash(),
        "build_date": datetime.now(timezone.utc).isoformat(),
        "python_version": platform.python_version(),
    }