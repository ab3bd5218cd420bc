"""
Core data types for commute-brief.

This module defines the data structures passed between pipeline stages:
- FeedSource: A named RSS/Atom feed
- RawArticle: A normalized article emitted by the batcher
- BatchResult / RandomBatchResult: Output of one batch fetch
- HistoryItem: A persisted summary of a previous briefing
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FeedSource:
    """A configured feed source.

    Attributes:
        name: Display name of the source
        url: URL of the RSS/Atom feed
    """
    name: str
    url: str


@dataclass(frozen=True)
class RawArticle:
    """An article produced by the batcher.

    Attributes:
        title: The article headline
        content: Normalized plain text, paragraphs separated by blank lines
        source_name: Name of the feed source the article came from
    """
    title: str
    content: str
    source_name: str


@dataclass
class BatchResult:
    """Result of fetching one feed.

    Attributes:
        articles: Newly surfaced, previously unseen articles
        fetched_count: Number of records returned by the feed endpoint
    """
    articles: list[RawArticle] = field(default_factory=list)
    fetched_count: int = 0


@dataclass
class RandomBatchResult(BatchResult):
    """Result of random-source selection.

    Attributes:
        source: The source that produced the articles, or the last one tried
        sources_tried: Number of distinct sources attempted
    """
    source: FeedSource | None = None
    sources_tried: int = 0


@dataclass
class HistoryItem:
    """A previously generated briefing.

    Attributes:
        id: Millisecond timestamp string used as identifier
        title: First non-empty line of the original text, truncated
        original_text: The text that was summarized
        summary: The generated summary
        timestamp: Creation time in epoch milliseconds
    """
    id: str
    title: str
    original_text: str
    summary: str
    timestamp: int
