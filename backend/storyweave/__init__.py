"""Storyweave: news story deduplication, clustering and incremental analysis."""

__version__ = "1.0.0"
