"""HTTP surface over the cache store."""

from fundnav.api.app import create_app

__all__ = ["create_app"]
