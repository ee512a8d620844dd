"""
RSS / Atom Feed Collector

以 feedparser 解析 RSS <item> 與 Atom <entry> 兩種格式。
僅使用 title/summary/link，不抓取全文。
"""

import re
import feedparser
from typing import List, Optional, Dict, Any, Union
import logging
from urllib.parse import urlparse

from region_pulse.collectors.base import FetchContext, fetch_url
from region_pulse.models import AdapterResult, MediaAttachment, Publisher, RawItem
from region_pulse.utils import time as time_utils
from region_pulse.utils.text import clean_html

logger = logging.getLogger(__name__)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml, */*"

_REDDIT_LINK_RE = re.compile(r'<a href="([^"]+)"[^>]*>\[link\]</a>')


def favicon_url(url: str) -> Optional[str]:
    """Feed domain -> favicon URL"""
    domain = urlparse(url).hostname
    if not domain:
        return None
    return f"https://icon.horse/icon/{domain}"


def _entry_body(entry: Dict[str, Any]) -> str:
    """Atom 用 <content> 或 <summary>，RSS 用 <description>"""
    contents = entry.get('content') or []
    if contents and contents[0].get('value'):
        return contents[0]['value']
    return entry.get('summary', entry.get('description', '')) or ''


def _reddit_fields(entry: Dict[str, Any], body: str, title: str, link: str):
    """
    Reddit Atom feed: 外部文章連結在 content 的 [link] anchor，縮圖在 media:thumbnail

    Returns:
        (link, description, media)
    """
    match = _REDDIT_LINK_RE.search(body)
    if match:
        link = match.group(1).replace('&amp;', '&')

    media = []
    thumbnails = entry.get('media_thumbnail') or []
    if thumbnails and thumbnails[0].get('url'):
        thumb_url = thumbnails[0]['url'].replace('&amp;', '&')
        media.append(MediaAttachment(type='image', url=thumb_url, thumbnail=thumb_url, alt=title))

    return link, title, media


def parse_feed(content: Union[bytes, str], source_name: str = "") -> List[RawItem]:
    """
    解析 feed 內容

    Args:
        content: Feed XML
        source_name: Log 用名稱

    Returns:
        List of RawItem (缺 link 或缺文字的項目略過)
    """
    raw = content.encode("utf-8") if isinstance(content, str) else content
    feed = feedparser.parse(raw)

    if feed.bozo and not feed.entries:
        logger.warning(f"Feed parsing warning for {source_name}: {feed.get('bozo_exception')}")
        return []

    is_reddit = b"reddit.com/r/" in raw

    items = []
    for entry in feed.entries:
        try:
            title = (entry.get('title') or '').strip()
            body = _entry_body(entry)
            link = (entry.get('link') or '').strip()

            if not link or not (title or body):
                continue

            media: List[MediaAttachment] = []
            if is_reddit and body:
                link, description, media = _reddit_fields(entry, body, title, link)
            else:
                description = clean_html(body)

            # 社群 feed 沒有標題時以內文代替
            item_title = title or clean_html(body)

            published = entry.get('published') or entry.get('updated')
            if not published:
                published = time_utils.format_iso8601(time_utils.utcnow())

            items.append(RawItem(
                title=item_title,
                description=description,
                link=link,
                published=published,
                guid=entry.get('id') or link,
                media=media
            ))
        except Exception as e:
            logger.error(f"Error processing entry from {source_name}: {e}")
            continue

    return items


async def collect(publisher: Publisher, ctx: FetchContext) -> AdapterResult:
    """
    從單一 RSS/Atom feed 收集資料

    Args:
        publisher: Feed 來源
        ctx: FetchContext

    Returns:
        AdapterResult (失敗時為空)
    """
    label = f"RSS {publisher.label}"

    if ctx.caches.should_skip(publisher.feed_url) or ctx.caches.in_backoff(publisher.feed_url):
        logger.debug(f"{label}: skipped (resilience cache)")
        return AdapterResult()

    response = await fetch_url(
        ctx,
        publisher.feed_url,
        cache_key=publisher.feed_url,
        label=label,
        timeout=ctx.settings.request_timeout,
        headers=ctx.browser_headers(FEED_ACCEPT),
        invalid_statuses=(404, 410)
    )
    if response is None:
        return AdapterResult()

    items = parse_feed(response.content, publisher.name)
    logger.info(f"Collected {len(items)} items from {publisher.name}")

    return AdapterResult(items=items, avatar_url=favicon_url(publisher.feed_url))
