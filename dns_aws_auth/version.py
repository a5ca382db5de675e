"""Package version, overridable at build time."""

import os
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as distribution_version

DISTRIBUTION_NAME = "dns-aws-auth"


def get_version() -> str:
    """Return BUILD_VERSION when set, else the installed distribution version.

    Falls back to "unknown" when the package is imported without being installed.
    """
    if build_version := os.getenv("BUILD_VERSION"):
        return build_version
    try:
        return distribution_version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "unknown"


__version__ = get_version()
