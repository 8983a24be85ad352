"""Fuzzy search over the instrument directory."""

from fundnav.search.index import SearchIndex, TfidfSearchIndex

__all__ = ["SearchIndex", "TfidfSearchIndex"]
