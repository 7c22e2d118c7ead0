"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Version of the installed mrcloud-core distribution.

Falls back to the VERSION file when running from a source checkout that was
never installed.
"""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION = "mrcloud-core"


def get_version() -> str:
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        version_file = Path(__file__).parent.parent / "VERSION"
        if version_file.exists():
            return version_file.read_text().strip()
        return "unknown"


__version__ = get_version()
