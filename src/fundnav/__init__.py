"""fundnav — cached mutual fund directory and NAV history service."""

__version__ = "0.1.0"
