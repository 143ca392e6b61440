"""
Sources module.

Contains the discussion sources and the cache gateway in front of them.
"""

from ideagen.sources.base import LiveFetch, Source
from ideagen.sources.reddit import LISTING_VARIANTS, RedditSource, parse_listing
from ideagen.sources.mock import MockRedditSource, write_mock_file
from ideagen.sources.gateway import SourceCacheGateway

__all__ = [
    "LiveFetch",
    "Source",
    "LISTING_VARIANTS",
    "RedditSource",
    "parse_listing",
    "MockRedditSource",
    "write_mock_file",
    "SourceCacheGateway",
]
