"""Merge, filter and sort M3U playlists from several sources."""

__version__ = "0.1.0"