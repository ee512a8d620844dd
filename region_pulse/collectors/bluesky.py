"""
Bluesky Collector

Bluesky 沒有原生 RSS，使用 public API 的 app.bsky.feed.getAuthorFeed。
"""

import re
from typing import Any, Dict, List, Optional
import logging

from region_pulse.collectors.base import FetchContext, fetch_url
from region_pulse.models import (
    AdapterResult,
    MediaAttachment,
    Publisher,
    RawItem,
    ReplyContext,
    RepostContext,
)

logger = logging.getLogger(__name__)

REASON_REPOST = "app.bsky.feed.defs#reasonRepost"
PARENT_TEXT_LIMIT = 100

_PROFILE_RE = re.compile(r'bsky\.app/profile/([^/?#]+)')


def extract_handle(feed_url: str) -> Optional[str]:
    """
    https://bsky.app/profile/<handle> -> handle

    也接受直接填寫 handle (例如 kyivindependent.com)
    """
    match = _PROFILE_RE.search(feed_url)
    if match:
        return match.group(1)
    value = feed_url.strip().lstrip('@')
    if value and '/' not in value and ' ' not in value:
        return value
    return None


def _extract_media(embed: Dict[str, Any], link: str) -> List[MediaAttachment]:
    media = []
    embed_type = embed.get('$type') or ''

    # 圖片可能在 embed 本身或 recordWithMedia 的 media 底下
    images = embed.get('images') or (embed.get('media') or {}).get('images') or []
    for img in images:
        media.append(MediaAttachment(
            type='image',
            url=img.get('fullsize') or img.get('thumb') or '',
            thumbnail=img.get('thumb'),
            alt=img.get('alt')
        ))

    if 'video' in embed_type and embed.get('thumbnail'):
        media.append(MediaAttachment(
            type='video',
            url=embed.get('playlist') or link,
            thumbnail=embed['thumbnail']
        ))

    external = embed.get('external') or {}
    if external.get('uri'):
        media.append(MediaAttachment(
            type='external',
            url=external['uri'],
            thumbnail=external.get('thumb'),
            title=external.get('title'),
            alt=external.get('description')
        ))

    return media


def _placeholder_text(embed: Optional[Dict[str, Any]]) -> str:
    """只有附件沒有文字的貼文"""
    if not embed:
        return '[No content]'

    embed_type = embed.get('$type') or ''
    images = embed.get('images') or []
    if 'video' in embed_type:
        return '[Video]'
    if 'images' in embed_type or images:
        alt = images[0].get('alt') if images else None
        return alt or '[Image]'
    external = embed.get('external') or {}
    if external.get('title'):
        return external['title']
    return '[Media attachment]'


def _reply_context(item: Dict[str, Any], record: Dict[str, Any]) -> Optional[ReplyContext]:
    """
    回覆資訊有兩個來源:
    1. item.reply.parent.post: 含作者與內文的 thread context
    2. post.record.reply: 只有 URI，代表這篇是回覆但沒有 parent 細節
    """
    parent = (item.get('reply') or {}).get('parent') or {}
    # 舊格式包在 parent.post；目前的 API 直接回傳 PostView
    parent_post = parent.get('post') or (parent if parent.get('author') else None)

    if parent_post:
        author = parent_post.get('author') or {}
        parent_text = (parent_post.get('record') or {}).get('text')
        return ReplyContext(
            parent_author=author.get('displayName') or author.get('handle') or 'someone',
            parent_handle=author.get('handle'),
            parent_text=parent_text[:PARENT_TEXT_LIMIT] if parent_text else None
        )

    if record.get('reply'):
        return ReplyContext(parent_author='someone')

    return None


def _repost_context(item: Dict[str, Any], author: Dict[str, Any]) -> Optional[RepostContext]:
    """reason.by = 轉貼者；post.author = 原作者"""
    reason = item.get('reason') or {}
    if reason.get('$type') != REASON_REPOST or not reason.get('by'):
        return None

    by = reason['by']
    return RepostContext(
        original_author=author.get('displayName') or author.get('handle') or '',
        original_handle=author.get('handle') or '',
        reposted_by=by.get('displayName') or by.get('handle')
    )


def parse_post(item: Dict[str, Any]) -> RawItem:
    """
    將 getAuthorFeed 的單一 feed item 轉成 RawItem

    Args:
        item: {"post": {...}, "reply": {...}, "reason": {...}}

    Returns:
        RawItem
    """
    post = item['post']
    record = post.get('record') or {}
    author = post.get('author') or {}

    post_id = post['uri'].rstrip('/').split('/')[-1] or post.get('cid', '')
    link = f"https://bsky.app/profile/{author.get('handle', '')}/post/{post_id}"
    embed = post.get('embed')

    media = _extract_media(embed, link) if embed else []

    text = record.get('text') or ''
    if not text.strip():
        text = _placeholder_text(embed)

    return RawItem(
        title=text,
        description=text,
        link=link,
        published=record.get('createdAt'),
        guid=post['uri'],
        media=media,
        reply_context=_reply_context(item, record),
        repost_context=_repost_context(item, author)
    )


def parse_author_feed(data: Dict[str, Any], source_name: str = "") -> AdapterResult:
    """
    解析 getAuthorFeed 回應

    Args:
        data: JSON 回應
        source_name: Log 用名稱

    Returns:
        AdapterResult (作者頭像取自第一篇)
    """
    feed = data.get('feed') if isinstance(data, dict) else None
    if not feed or not isinstance(feed, list):
        return AdapterResult()

    items = []
    for entry in feed:
        try:
            items.append(parse_post(entry))
        except Exception as e:
            logger.error(f"[Bluesky] {source_name}: dropped malformed post: {e}")
            continue

    first = feed[0] if isinstance(feed[0], dict) else {}
    post = first.get('post') if isinstance(first.get('post'), dict) else {}
    author = post.get('author') if isinstance(post.get('author'), dict) else {}
    return AdapterResult(items=items, avatar_url=author.get('avatar'))


async def collect(publisher: Publisher, ctx: FetchContext) -> AdapterResult:
    """
    從單一 Bluesky 帳號收集貼文

    Args:
        publisher: Bluesky 來源
        ctx: FetchContext

    Returns:
        AdapterResult (失敗時為空)
    """
    handle = extract_handle(publisher.feed_url)
    if not handle:
        logger.error(f"[Bluesky] Invalid feed_url format: {publisher.feed_url}")
        return AdapterResult()

    # invalid 或連續 timeout 的 handle 直接跳過 (先前已記錄過 log)
    if ctx.caches.should_skip(handle) or ctx.caches.in_backoff(handle):
        return AdapterResult()

    settings = ctx.settings
    response = await fetch_url(
        ctx,
        f"{settings.bluesky_api_base}/xrpc/app.bsky.feed.getAuthorFeed",
        params={"actor": handle, "limit": settings.bluesky_limit, "filter": "posts_no_replies"},
        cache_key=handle,
        label=f"[Bluesky] {publisher.name} ({handle})",
        timeout=settings.request_timeout,
        headers={"Accept": "application/json", "User-Agent": settings.user_agent},
        invalid_statuses=(400, 404)
    )
    if response is None:
        return AdapterResult()

    try:
        data = response.json()
    except ValueError as e:
        logger.error(f"[Bluesky] {publisher.name} ({handle}): invalid JSON: {e}")
        return AdapterResult()

    return parse_author_feed(data, publisher.name)
