"""Version information for ncb-e2e."""

__version__ = "0.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Release information
__title__ = "ncb-e2e"
__description__ = "Browser regression suite and verification helpers for the NoCowboys site"
__author__ = "NoCowboys QA Team"
__license__ = "MIT"
__copyright__ = "Copyright 2025-2026 NoCowboys QA Team"


def get_version() -> str:
    """Return the current version string."""
    return __version__


def get_version_info() -> tuple[int, ...]:
    """Return the version as a tuple of integers."""
    return __version_info__
