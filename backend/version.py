"""
Single source of version: the VERSION file at the repository root.
Reported by /health, / and /api/v1/meta/version.
"""

from __future__ import annotations

import re
from pathlib import Path

# Semantic version pattern (major.minor.patch, optional -pre)
SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$")


def _version_file_path() -> Path:
    # backend/version.py -> repo root
    return Path(__file__).resolve().parent.parent / "VERSION"


def get_version() -> str:
    """Return version string from VERSION file, or '0.0.0' if missing/invalid."""
    path = _version_file_path()
    if not path.is_file():
        return "0.0.0"
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except OSError:
        return "0.0.0"
    version = raw.splitlines()[0].strip() if raw else ""
    return version if is_semver(version) else "0.0.0"


def is_semver(s: str) -> bool:
    """Return True if s matches semantic version pattern (e.g. 1.0.0 or 1.0.0-alpha)."""
    return bool(s and SEMVER_PATTERN.match(s.strip()))
