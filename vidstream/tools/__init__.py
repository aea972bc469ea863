"""
External service clients for VidStream.

- YouTubeClient: YouTube Data API v3 (search, videos, channels)
"""

from vidstream.tools.youtube import YouTubeClient, get_category_id, parse_iso_duration

__all__ = [
    "YouTubeClient",
    "get_category_id",
    "parse_iso_duration",
]
