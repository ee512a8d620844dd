"""
Tests for the fetch orchestrator
"""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from region_pulse.collectors import orchestrator
from region_pulse.collectors.base import FetchContext
from region_pulse.collectors.telegram import TelegramSession
from region_pulse.config import FetchConfig, RegionPulseConfig, TelegramConfig
from region_pulse.models import AdapterResult, Publisher, RawItem

NOW = datetime(2026, 2, 13, 12, 0, tzinfo=timezone.utc)

PUBLISHED = {
    "ok-1": "2026-02-13T10:00:00Z",
    "ok-2": "2026-02-13T11:00:00Z",
    "ok-3": "2026-02-13T09:00:00Z",
}


def create_publisher(pid: str, platform: str = "rss", feed_url: str = None) -> Publisher:
    """Helper to create test publisher"""
    return Publisher(
        id=pid,
        name=pid,
        platform=platform,
        feed_url=feed_url or f"https://example.com/{pid}.xml"
    )


async def fake_adapter(publisher, ctx):
    if publisher.id.startswith("bad"):
        raise RuntimeError("upstream exploded")
    if publisher.id == "slow":
        await asyncio.sleep(5)
    if publisher.id == "empty":
        return AdapterResult()
    title = "Strikes near Kyiv" if publisher.id == "ok-3" else f"{publisher.id} update"
    return AdapterResult(items=[
        RawItem(
            title=title,
            link=f"https://example.com/{publisher.id}/1",
            published=PUBLISHED[publisher.id]
        )
    ])


def run_collect_all(publishers, settings=None):
    """Helper: 以 fake adapter 執行 collect_all"""
    async def _main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500))) as client:
            ctx = FetchContext(client, settings=settings)
            return await orchestrator.collect_all(publishers, ctx, adapters={"rss": fake_adapter}, now=NOW)

    return asyncio.run(_main())


def test_partial_failures_are_isolated():
    """2 個 adapter 失敗、3 個成功：回傳 3 篇，依時間由新到舊"""
    publishers = [
        create_publisher("ok-1"),
        create_publisher("bad-1"),
        create_publisher("ok-2"),
        create_publisher("bad-2"),
        create_publisher("ok-3"),
    ]

    items, stats = run_collect_all(publishers)

    assert [item.publisher.id for item in items] == ["ok-2", "ok-1", "ok-3"]
    assert stats["publisher_count"] == 5
    assert stats["failed_publishers"] == 2
    assert stats["fetched_count"] == 3
    assert stats["deduped_count"] == 3
    assert stats["unassigned_count"] == 2


def test_all_publishers_fail():
    items, stats = run_collect_all([create_publisher("bad-1"), create_publisher("bad-2")])

    assert items == []
    assert stats["failed_publishers"] == 2


def test_deadline_skips_slow_publisher():
    settings = FetchConfig(publisher_deadline=0.05)

    items, stats = run_collect_all([create_publisher("slow"), create_publisher("ok-1")], settings)

    assert [item.publisher.id for item in items] == ["ok-1"]
    assert stats["empty_publishers"] == 1
    assert stats["failed_publishers"] == 0


def test_bounded_concurrency():
    settings = FetchConfig(max_concurrency=1)

    items, _ = run_collect_all([create_publisher(pid) for pid in PUBLISHED], settings)

    assert len(items) == 3


def test_duplicate_publishers_are_deduplicated():
    items, stats = run_collect_all([create_publisher("ok-1"), create_publisher("ok-1")])

    assert len(items) == 1
    assert stats["duplicates_by_id"] == 1


def test_empty_publisher_list():
    items, stats = run_collect_all([])

    assert items == []
    assert stats["publisher_count"] == 0


@pytest.mark.parametrize("platform,feed_url,expected", [
    ("rss", "https://t.me/s/DeepStateUA", "telegram"),
    ("rss", "https://bsky.app/profile/kyivindependent.com", "bluesky"),
    ("rss", "https://www.youtube.com/feeds/videos.xml?channel_id=X", "youtube"),
    ("rss", "https://www.timesofisrael.com/feed/", "rss"),
    ("mastodon", "https://t.me/not-really", "mastodon"),
])
def test_detect_platform(platform, feed_url, expected):
    publisher = create_publisher("p", platform=platform, feed_url=feed_url)
    assert orchestrator.detect_platform(publisher) == expected


RSS_FEED = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Feed</title>
<item><title>Netanyahu visits Gaza</title><link>https://news.example.com/a</link>
<pubDate>Fri, 13 Feb 2026 10:00:00 +0000</pubDate></item>
</channel></rss>
"""

BLUESKY_FEED = {
    "feed": [{
        "post": {
            "uri": "at://did:plc:kyiv/app.bsky.feed.post/3kxyz1",
            "author": {"handle": "kyivindependent.com", "displayName": "Kyiv Independent"},
            "record": {"text": "Explosions reported in Kyiv", "createdAt": "2026-02-13T11:00:00.000Z"},
        }
    }]
}


def service_transport(request: httpx.Request) -> httpx.Response:
    if request.url.host == "news.example.com":
        return httpx.Response(200, text=RSS_FEED)
    if request.url.host == "public.api.bsky.app":
        return httpx.Response(200, json=BLUESKY_FEED)
    return httpx.Response(404)


def test_fetch_service_end_to_end(monkeypatch):
    """真實 adapter + MockTransport：RSS 與 Bluesky 合併並分類"""
    for name in ("TELEGRAM_API_ID", "TELEGRAM_API_HASH", "TELEGRAM_SESSION"):
        monkeypatch.delenv(name, raising=False)

    config = RegionPulseConfig(
        publishers=[
            Publisher(id="feed", name="Feed", feed_url="https://news.example.com/rss", region="us"),
            Publisher(id="kyiv", name="Kyiv Independent", platform="bluesky",
                      feed_url="https://bsky.app/profile/kyivindependent.com", tier="news-org"),
        ]
    )
    session = TelegramSession(TelegramConfig())
    assert not session.configured

    async def _main():
        async with orchestrator.FetchService(
            config,
            transport=httpx.MockTransport(service_transport),
            telegram_session=session
        ) as service:
            return await service.collect(now=NOW)

    items, stats = asyncio.run(_main())

    assert stats["failed_publishers"] == 0
    assert [item.region for item in items] == ["europe-russia", "middle-east"]

    kyiv, feed = items
    assert kyiv.url == "https://bsky.app/profile/kyivindependent.com/post/3kxyz1"
    assert kyiv.verification_status == "multiple-sources"
    assert feed.assignment.source_region == "us"
    assert feed.avatar_url == "https://icon.horse/icon/news.example.com"


def test_fetch_service_requires_context_manager():
    service = orchestrator.FetchService(RegionPulseConfig())

    with pytest.raises(RuntimeError):
        asyncio.run(service.collect())
