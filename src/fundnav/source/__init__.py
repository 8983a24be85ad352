"""Upstream source adapter: directory and raw NAV history fetching."""

from fundnav.source.client import MfApiClient, parse_raw_series
from fundnav.source.directory import (
    DISALLOWED_KEYWORDS,
    build_directory,
    clean_display_name,
    is_eligible,
)

__all__ = [
    "MfApiClient",
    "parse_raw_series",
    "DISALLOWED_KEYWORDS",
    "build_directory",
    "clean_display_name",
    "is_eligible",
]
