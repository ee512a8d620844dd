"""
Fetch Orchestrator

把一批 publishers 同時分派給對應的 adapter，收集所有部分成功的結果，
標準化、去重後依時間由新到舊回傳。單一 publisher 的失敗不會中斷整批。
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
import logging

import httpx

from region_pulse.collectors import bluesky, mastodon, rss, telegram, youtube
from region_pulse.collectors.base import FetchContext
from region_pulse.collectors.normalize import normalize_items
from region_pulse.config import RegionPulseConfig
from region_pulse.models import AdapterResult, NormalizedItem, Publisher
from region_pulse.processing.dedupe import deduplicate_items
from region_pulse.storage.resilience_cache import ResilienceCaches

logger = logging.getLogger(__name__)

Adapter = Callable[[Publisher, FetchContext], Awaitable[AdapterResult]]

ADAPTERS: Dict[str, Adapter] = {
    "rss": rss.collect,
    "bluesky": bluesky.collect,
    "telegram": telegram.collect,
    "mastodon": mastodon.collect,
    "youtube": youtube.collect,
}

# 設定為 rss 但 URL 明顯屬於其他平台時改用對應 adapter
URL_PLATFORM_HINTS = [
    ("t.me/", "telegram"),
    ("bsky.app", "bluesky"),
    ("youtube.com/feeds/", "youtube"),
]


def detect_platform(publisher: Publisher) -> str:
    if publisher.platform != "rss":
        return publisher.platform
    for hint, platform in URL_PLATFORM_HINTS:
        if hint in publisher.feed_url:
            return platform
    return "rss"


async def fetch_publisher(
    publisher: Publisher,
    ctx: FetchContext,
    adapters: Optional[Dict[str, Adapter]] = None,
    now: Optional[datetime] = None
) -> List[NormalizedItem]:
    """
    抓取並標準化單一 publisher

    超過 publisher_deadline 時放棄 (包含 Telegram fallback 在內的總時間)。

    Args:
        publisher: 來源
        ctx: FetchContext
        adapters: Platform -> adapter (測試可替換)
        now: 當前時間 (測試用)

    Returns:
        NormalizedItem 清單
    """
    adapters = adapters or ADAPTERS
    platform = detect_platform(publisher)
    adapter = adapters.get(platform)
    if adapter is None:
        logger.error(f"No adapter for platform {platform!r} ({publisher.label})")
        return []

    deadline = ctx.settings.publisher_deadline
    try:
        result = await asyncio.wait_for(adapter(publisher, ctx), timeout=deadline)
    except asyncio.TimeoutError:
        logger.warning(f"{publisher.label}: exceeded {deadline:g}s deadline, skipped this cycle")
        return []

    return normalize_items(result.items, publisher, result.avatar_url, now)


async def collect_all(
    publishers: List[Publisher],
    ctx: FetchContext,
    adapters: Optional[Dict[str, Adapter]] = None,
    now: Optional[datetime] = None
) -> Tuple[List[NormalizedItem], Dict[str, int]]:
    """
    同時抓取所有 publishers

    Args:
        publishers: Publisher 清單
        ctx: FetchContext
        adapters: Platform -> adapter (測試可替換)
        now: 當前時間 (測試用)

    Returns:
        (去重且 newest-first 的 items, 統計資訊)
    """
    max_concurrency = ctx.settings.max_concurrency
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def _run(publisher: Publisher) -> List[NormalizedItem]:
        if semaphore is None:
            return await fetch_publisher(publisher, ctx, adapters, now)
        async with semaphore:
            return await fetch_publisher(publisher, ctx, adapters, now)

    logger.info(f"Fetching {len(publishers)} publishers")
    results = await asyncio.gather(*[_run(p) for p in publishers], return_exceptions=True)

    merged: List[NormalizedItem] = []
    failed = 0
    empty = 0

    for publisher, result in zip(publishers, results):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            failed += 1
            logger.error(f"Error fetching {publisher.label}: {result!r}")
            continue
        if not result:
            empty += 1
        merged.extend(result)

    items, dedupe_stats = deduplicate_items(merged)

    stats = {
        'publisher_count': len(publishers),
        'failed_publishers': failed,
        'empty_publishers': empty,
        'fetched_count': len(merged),
        'deduped_count': len(items),
        'duplicates_by_id': dedupe_stats['duplicates_by_id'],
        'unassigned_count': sum(1 for item in items if item.region is None),
    }

    logger.info(f"Collected {len(items)} items from {len(publishers) - failed - empty} publishers "
                f"({failed} failed, {empty} empty)")

    return items, stats


class FetchService:
    """
    長時間存活的抓取服務

    擁有共用的 httpx.AsyncClient、ResilienceCaches 與 TelegramSession；
    以 async context manager 管理生命週期。
    """

    def __init__(
        self,
        config: RegionPulseConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        telegram_session: Optional[telegram.TelegramSession] = None
    ):
        self.config = config
        self.transport = transport
        self.caches = ResilienceCaches(
            invalid_ttl=config.cache.invalid_ttl_seconds,
            timeout_ttl=config.cache.timeout_ttl_seconds,
            timeout_threshold=config.cache.timeout_threshold,
            default_backoff=config.cache.default_backoff_seconds
        )
        self.telegram = telegram_session or telegram.TelegramSession(config.telegram)
        self.client: Optional[httpx.AsyncClient] = None
        self.context: Optional[FetchContext] = None

    async def __aenter__(self) -> "FetchService":
        self.client = httpx.AsyncClient(
            transport=self.transport,
            follow_redirects=True,
            headers={"User-Agent": self.config.fetch.user_agent}
        )
        self.context = FetchContext(
            client=self.client,
            caches=self.caches,
            settings=self.config.fetch,
            telegram=self.telegram
        )
        if not self.telegram.configured:
            logger.info("Telegram session not configured, using preview scraper")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.telegram.disconnect()
        if self.client is not None:
            await self.client.aclose()
        self.client = None
        self.context = None

    async def collect(
        self,
        publishers: Optional[List[Publisher]] = None,
        now: Optional[datetime] = None
    ) -> Tuple[List[NormalizedItem], Dict[str, int]]:
        """抓取一批 publishers (預設為設定檔中的全部)"""
        if self.context is None:
            raise RuntimeError("FetchService must be used as an async context manager")

        self.caches.sweep()
        if publishers is None:
            publishers = self.config.publishers
        return await collect_all(publishers, self.context, now=now)
