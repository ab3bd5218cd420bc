"""
Article batching: fetch a feed, skip what was already shown, normalize the rest.

The batcher is the only writer of the seen-ID store. An article is marked
seen only once it has been taken into a batch, so a feed whose items were
all seen before leaves the store untouched.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Sequence

import httpx

from ..config import FeedConfig
from ..fetch.extractor import normalize
from ..fetch.fetcher import FeedError, fetch_feed_entries
from .dedup import SeenIdStore, is_similar_title, seen_id
from .types import BatchResult, FeedSource, RandomBatchResult, RawArticle

logger = logging.getLogger(__name__)

EXTRACTION_FAILED = "(Content extraction failed)"

_BODY_FIELDS = ("content", "description", "summary")

DEFAULT_SOURCES: list[FeedSource] = [
    FeedSource("IT之家 (科技)", "https://www.ithome.com/rss/"),
    FeedSource("36Kr (商业)", "https://36kr.com/feed"),
    FeedSource("少数派 (生活)", "https://sspai.com/feed"),
    FeedSource("Solidot (极客)", "http://solidot.org/index.rss"),
    FeedSource("The Verge (科技评论)", "https://www.theverge.com/rss/index.xml"),
    FeedSource("Wired (深度前瞻)", "https://www.wired.com/feed/rss"),
    FeedSource("TechCrunch (创投风向)", "https://techcrunch.com/feed/"),
    FeedSource("Teslarati (马斯克/SpaceX)", "https://www.teslarati.com/feed/"),
    FeedSource("Ars Technica (深度科技)", "https://feeds.arstechnica.com/arstechnica/index"),
    FeedSource("MIT Tech Review (AI前沿)", "https://www.technologyreview.com/feed/"),
    FeedSource("Tom's Hardware (英伟达/硬件)", "https://www.tomshardware.com/feeds/all"),
]


class ArticleBatcher:
    """Builds bounded batches of unseen, normalized articles.

    Attributes:
        cfg: Feed configuration (endpoint, batch size, thresholds)
        seen: Store of already-shown article identifiers
    """

    def __init__(
        self,
        cfg: FeedConfig,
        seen: SeenIdStore,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.cfg = cfg
        self.seen = seen
        self._transport = transport
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def fetch_batch(self, feed_url: str, source_name: str) -> BatchResult:
        """Fetch one feed and return its unseen articles.

        Args:
            feed_url: URL of the RSS/Atom feed
            source_name: Display name attached to each article

        Returns:
            BatchResult with at most ``cfg.batch_size`` articles in feed order

        Raises:
            FeedError: If the feed endpoint fails
        """
        records = await fetch_feed_entries(
            feed_url,
            self.cfg.endpoint,
            timeout=self.cfg.timeout_seconds,
            transport=self._transport,
        )
        candidates = self._select(records)

        articles: list[RawArticle] = []
        for record, article_id in candidates[: self.cfg.batch_size]:
            if article_id:
                self.seen.mark_seen(article_id)
            articles.append(self._build_article(record, source_name))

        logger.info(
            "Fetched batch",
            extra={
                "source": source_name,
                "fetched_count": len(records),
                "batch_count": len(articles),
            },
        )
        return BatchResult(articles=articles, fetched_count=len(records))

    async def fetch_random_batch(self, sources: Sequence[FeedSource] | None = None) -> RandomBatchResult:
        """Fetch from randomly chosen sources until one yields articles.

        Each attempt picks a source not tried yet (any source once all have
        been tried). Fetch errors count as empty attempts.
        """
        pool = list(DEFAULT_SOURCES if sources is None else sources)
        if not pool:
            return RandomBatchResult()

        tried: list[FeedSource] = []
        result = RandomBatchResult()
        for attempt in range(1, self.cfg.max_source_attempts + 1):
            untried = [s for s in pool if s not in tried] or pool
            source = self._rng.choice(untried)
            if source not in tried:
                tried.append(source)
            try:
                batch = await self.fetch_batch(source.url, source.name)
            except FeedError as exc:
                logger.warning(
                    "Random source fetch failed",
                    extra={"source": source.name, "attempt": attempt, "error": str(exc)},
                )
                batch = BatchResult()

            result = RandomBatchResult(
                articles=batch.articles,
                fetched_count=batch.fetched_count,
                source=source,
                sources_tried=len(tried),
            )
            if batch.articles:
                return result
            if attempt < self.cfg.max_source_attempts:
                await self._sleep(self.cfg.source_retry_pause_seconds)

        logger.warning("No new articles from random sources", extra={"sources_tried": len(tried)})
        return result

    def _select(self, records: list[dict[str, Any]]) -> list[tuple[dict[str, Any], str]]:
        """Drop seen records and in-feed duplicates, preserving order."""
        seen_ids = set(self.seen.seen_ids())
        kept: list[tuple[dict[str, Any], str]] = []
        titles: list[str] = []
        for record in records:
            article_id = seen_id(record)
            if article_id and article_id in seen_ids:
                continue
            title = _field(record, "title")
            if is_similar_title(title, titles, self.cfg.title_similarity_threshold):
                continue
            titles.append(title)
            if article_id:
                seen_ids.add(article_id)
            kept.append((record, article_id))
        return kept

    def _build_article(self, record: dict[str, Any], source_name: str) -> RawArticle:
        title = _field(record, "title")
        body = next((_field(record, name) for name in _BODY_FIELDS if _field(record, name)), "")
        content = normalize(body)
        if len(content) < self.cfg.min_content_chars:
            content = normalize(title) or EXTRACTION_FAILED
        return RawArticle(title=title, content=content, source_name=source_name)


def format_batch(result: BatchResult, source_name: str, limit: int = 5) -> str:
    """Join a batch into a single text block ready for summarization."""
    sections = [
        f"# Article {i + 1}: {article.title}\n\n{article.content.strip() or 'Content not available.'}"
        for i, article in enumerate(result.articles[:limit])
    ]
    return f"【Source: {source_name}】\n\n" + "\n\n---\n\n".join(sections)


def _field(record: dict[str, Any], name: str) -> str:
    value = record.get(name)
    if isinstance(value, str):
        return value.strip()
    return ""
