"""Tests for feed fetching and article batching."""

import asyncio
import random

import httpx
import pytest

from commute_brief.config import FeedConfig
from commute_brief.core.batcher import EXTRACTION_FAILED, ArticleBatcher, format_batch
from commute_brief.core.dedup import SEEN_KEY, SeenIdStore
from commute_brief.core.types import BatchResult, FeedSource, RawArticle
from commute_brief.fetch.fetcher import FeedError, fetch_feed_entries
from commute_brief.storage import MemoryStore

LONG_TEXT = "Hello world this is enough text to pass the fifty character floor easily."


def _transport(payload, status=200, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


def _batcher(transport, store=None, **overrides):
    cfg = FeedConfig(endpoint="https://feeds.test/fetch_feed", **overrides)
    seen = SeenIdStore(store if store is not None else MemoryStore())

    async def no_sleep(_seconds):
        return None

    return ArticleBatcher(cfg, seen, transport=transport, sleep=no_sleep, rng=random.Random(7))


def test_fetch_batch_normalizes_and_marks_seen():
    payload = [{"title": "A", "link": "u1", "content": f"<p>{LONG_TEXT}</p>"}]
    calls = []
    batcher = _batcher(_transport(payload, calls=calls))

    result = asyncio.run(batcher.fetch_batch("https://site.test/rss", "Site"))

    assert result.fetched_count == 1
    assert result.articles == [RawArticle(title="A", content=LONG_TEXT, source_name="Site")]
    assert batcher.seen.is_seen("u1")
    assert calls[0].url.params["rss_url"] == "https://site.test/rss"
    assert calls[0].headers["ngrok-skip-browser-warning"] == "true"


def test_fetch_batch_all_seen_leaves_store_untouched():
    store = MemoryStore({SEEN_KEY: ["u1", "u2"]})
    payload = {"entries": [{"title": "A", "link": "u1"}, {"title": "B", "link": "u2"}]}
    batcher = _batcher(_transport(payload), store=store)

    result = asyncio.run(batcher.fetch_batch("https://site.test/rss", "Site"))

    assert result.articles == []
    assert result.fetched_count == 2
    assert store.get(SEEN_KEY) == ["u1", "u2"]


def test_fetch_batch_caps_batch_size_in_feed_order():
    titles = [
        "Markets rally", "Rain expected", "New phone launched", "Election results", "Team wins final",
        "Chip shortage eases", "Museum reopens", "Bridge closed", "Vaccine approved", "Festival begins",
    ]
    payload = [{"title": title, "link": f"u{i}"} for i, title in enumerate(titles)]
    batcher = _batcher(_transport(payload))

    result = asyncio.run(batcher.fetch_batch("https://site.test/rss", "Site"))

    assert [a.title for a in result.articles] == [p["title"] for p in payload[:6]]
    assert batcher.seen.seen_ids() == [f"u{i}" for i in range(6)]


def test_short_body_falls_back_to_title_or_placeholder():
    payload = [
        {"title": "Short title", "link": "a", "description": "<p>tiny</p>"},
        {"title": "", "link": "b", "summary": "<p>tiny</p>"},
    ]
    batcher = _batcher(_transport(payload))

    result = asyncio.run(batcher.fetch_batch("https://site.test/rss", "Site"))

    assert result.articles[0].content == "Short title"
    assert result.articles[1].content == EXTRACTION_FAILED


def test_near_duplicate_titles_are_dropped():
    payload = [
        {"title": "SpaceX launches Starship test flight", "link": "a"},
        {"title": "SpaceX launches Starship test flight!", "link": "b"},
    ]
    batcher = _batcher(_transport(payload))

    result = asyncio.run(batcher.fetch_batch("https://site.test/rss", "Site"))

    assert len(result.articles) == 1
    assert not batcher.seen.is_seen("b")


def test_fetch_feed_entries_rejects_server_error():
    with pytest.raises(FeedError, match="Server error: 502") as excinfo:
        asyncio.run(fetch_feed_entries("https://site.test/rss", "https://feeds.test", transport=_transport({}, status=502)))
    assert excinfo.value.status_code == 502


def test_fetch_feed_entries_rejects_unexpected_payload():
    with pytest.raises(FeedError, match="Unexpected feed payload"):
        asyncio.run(fetch_feed_entries("https://site.test/rss", "https://feeds.test", transport=_transport({"items": []})))


def test_random_batch_retries_until_a_source_has_articles():
    sources = [FeedSource("Empty", "https://empty.test/rss"), FeedSource("Full", "https://full.test/rss")]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["rss_url"] == "https://full.test/rss":
            return httpx.Response(200, json=[{"title": "News", "link": "n1", "content": LONG_TEXT}])
        return httpx.Response(500)

    batcher = _batcher(httpx.MockTransport(handler))

    result = asyncio.run(batcher.fetch_random_batch(sources))

    assert result.source == sources[1]
    assert len(result.articles) == 1
    assert 1 <= result.sources_tried <= 2


def test_random_batch_gives_up_after_max_attempts():
    sleeps = []

    async def record_sleep(seconds):
        sleeps.append(seconds)

    cfg = FeedConfig(endpoint="https://feeds.test/fetch_feed")
    batcher = ArticleBatcher(cfg, SeenIdStore(MemoryStore()), transport=_transport([]), sleep=record_sleep)
    sources = [FeedSource("A", "https://a.test"), FeedSource("B", "https://b.test")]

    result = asyncio.run(batcher.fetch_random_batch(sources))

    assert result.articles == []
    assert result.sources_tried == 2
    assert sleeps == [1.0] * 4


def test_format_batch():
    result = BatchResult(
        articles=[
            RawArticle("First", "Body one", "Site"),
            RawArticle("Second", "Body two", "Site"),
        ],
        fetched_count=2,
    )

    text = format_batch(result, "Site")

    assert text == "【Source: Site】\n\n# Article 1: First\n\nBody one\n\n---\n\n# Article 2: Second\n\nBody two"


def test_random_batch_with_no_sources_fetches_nothing():
    calls = []
    batcher = _batcher(_transport([], calls=calls))

    result = asyncio.run(batcher.fetch_random_batch([]))

    assert result.articles == []
    assert result.sources_tried == 0
    assert calls == []
