"""
Core data types and article batching.

This package contains the data types passed between stages, the seen-ID
store, and the batcher that turns feeds into bounded article batches.
"""

from .types import BatchResult, FeedSource, HistoryItem, RandomBatchResult, RawArticle
from .dedup import SeenIdStore, seen_id
from .batcher import DEFAULT_SOURCES, ArticleBatcher, format_batch

__all__ = [
    "BatchResult",
    "FeedSource",
    "HistoryItem",
    "RandomBatchResult",
    "RawArticle",
    "SeenIdStore",
    "seen_id",
    "DEFAULT_SOURCES",
    "ArticleBatcher",
    "format_batch",
]
