"""
Feed fetching and content normalization.

This package talks to the external feed endpoint and converts
article markup into clean paragraph text.
"""

from .fetcher import FeedError, fetch_feed_entries
from .extractor import normalize

__all__ = [
    "FeedError",
    "fetch_feed_entries",
    "normalize",
]
