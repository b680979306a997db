"""Version of the scval tool, as stamped into check reports.

A source checkout reads the ``VERSION`` file next to the ``scval`` package; an
installed distribution without that file falls back to its package metadata.
"""

from __future__ import annotations

import re
from importlib import metadata
from pathlib import Path
from typing import Optional


DIST_NAME = "scval"

_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?$")


def source_root() -> Path:
    return Path(__file__).resolve().parents[1]


def read_version(*, repo_root: Optional[Path] = None) -> str:
    version_file = (repo_root or source_root()) / "VERSION"
    if version_file.is_file():
        version = version_file.read_text(encoding="utf-8").strip()
    else:
        try:
            version = metadata.version(DIST_NAME)
        except metadata.PackageNotFoundError as e:
            raise FileNotFoundError(f"no VERSION file at {version_file} and {DIST_NAME} is not installed") from e
    if _SEMVER_RE.match(version) is None:
        raise ValueError(f"{DIST_NAME} version is not SemVer: {version!r}")
    return version
