"""
YouTube Channel Feed Collector

YouTube 頻道有原生 Atom feed (youtube.com/feeds/videos.xml)，
額外取出 video id、縮圖與影片長度。
"""

import re
import feedparser
from typing import Any, Dict, List, Optional
import logging

from region_pulse.collectors.base import FetchContext, fetch_url
from region_pulse.models import AdapterResult, MediaAttachment, Publisher, RawItem
from region_pulse.utils import time as time_utils
from region_pulse.utils.text import decode_entities

logger = logging.getLogger(__name__)

YOUTUBE_AVATAR = "https://icon.horse/icon/youtube.com"
FEED_ACCEPT = "application/atom+xml, application/rss+xml, application/xml"

_VIDEO_ID_PATTERNS = [
    re.compile(r'yt:video:([a-zA-Z0-9_-]+)'),
    re.compile(r'youtube\.com/watch\?v=([a-zA-Z0-9_-]+)'),
    re.compile(r'youtu\.be/([a-zA-Z0-9_-]+)'),
]


def extract_video_id(value: str) -> Optional[str]:
    """從 yt:video:ID、watch?v=ID 或 youtu.be/ID 取出 video id"""
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(value or '')
        if match:
            return match.group(1)
    return None


def thumbnail_url(video_id: str) -> str:
    """mqdefault 為 320x180 (16:9)"""
    return f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg"


def format_duration(seconds: int) -> str:
    """秒數 -> M:SS 或 H:MM:SS"""
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _duration(entry: Dict[str, Any]) -> Optional[int]:
    for content in entry.get('media_content') or []:
        value = str(content.get('duration') or '')
        if value.isdigit():
            return int(value)
    return None


def parse_entry(entry: Dict[str, Any]) -> Optional[RawItem]:
    """
    單一 YouTube entry -> RawItem

    缺 title、link 或 video id 的 entry 回傳 None。
    """
    title = (entry.get('title') or '').strip()
    link = (entry.get('link') or '').strip()
    video_id = (
        entry.get('yt_videoid')
        or extract_video_id(entry.get('id', ''))
        or extract_video_id(link)
    )

    if not (title and link and video_id):
        return None

    thumbnails = entry.get('media_thumbnail') or []
    thumbnail = thumbnails[0].get('url') if thumbnails else None
    duration = _duration(entry)

    media = [MediaAttachment(
        type='video',
        url=link,
        thumbnail=thumbnail or thumbnail_url(video_id),
        title=title,
        alt=f"Duration: {format_duration(duration)}" if duration else None,
        duration=duration
    )]

    # feedparser 將 media:description 放在 summary
    description = entry.get('summary') or title
    published = entry.get('published') or entry.get('updated')

    return RawItem(
        title=decode_entities(title),
        description=decode_entities(description),
        link=link,
        published=published or time_utils.format_iso8601(time_utils.utcnow()),
        guid=f"youtube-{video_id}",
        media=media
    )


def parse_feed(content: bytes, source_name: str = "") -> List[RawItem]:
    """解析 YouTube Atom feed"""
    feed = feedparser.parse(content)

    items = []
    for entry in feed.entries:
        try:
            item = parse_entry(entry)
        except Exception as e:
            logger.error(f"[YouTube] {source_name}: dropped malformed entry: {e}")
            continue
        if item is not None:
            items.append(item)
    return items


async def collect(publisher: Publisher, ctx: FetchContext) -> AdapterResult:
    """
    從單一 YouTube 頻道 feed 收集影片

    Args:
        publisher: YouTube 來源
        ctx: FetchContext

    Returns:
        AdapterResult (失敗時為空)
    """
    # 429 之後在 Retry-After 期間不再請求
    if ctx.caches.should_skip(publisher.feed_url) or ctx.caches.in_backoff(publisher.feed_url):
        return AdapterResult()

    response = await fetch_url(
        ctx,
        publisher.feed_url,
        cache_key=publisher.feed_url,
        label=f"[YouTube] {publisher.name}",
        timeout=ctx.settings.slow_request_timeout,
        headers={"User-Agent": ctx.settings.feed_user_agent, "Accept": FEED_ACCEPT},
        invalid_statuses=(404,)
    )
    if response is None:
        return AdapterResult()

    items = parse_feed(response.content, publisher.name)
    return AdapterResult(items=items, avatar_url=YOUTUBE_AVATAR)
