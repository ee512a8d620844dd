"""
Mastodon Collector

Mastodon 有公開 API，公開貼文不需要授權:
1. /api/v1/accounts/lookup?acct=<handle> 取得 account id
2. /api/v1/accounts/<id>/statuses 取得最近貼文
"""

import re
from typing import Any, Dict, List, Optional, Tuple
import logging
from urllib.parse import urlparse

from region_pulse.collectors.base import FetchContext, fetch_url
from region_pulse.models import AdapterResult, MediaAttachment, Publisher, RawItem, RepostContext
from region_pulse.utils.text import clean_html

logger = logging.getLogger(__name__)

VISIBLE = ("public", "unlisted")
TITLE_LIMIT = 500

_URL_RE = re.compile(r'https?://([^/]+)/@([^/?]+)')
_ACCT_RE = re.compile(r'@?([^@]+)@([^/\s]+)')


def extract_account(feed_url: str) -> Optional[Tuple[str, str]]:
    """
    解析 handle 與 instance

    支援 https://mastodon.online/@user 與 @user@mastodon.online

    Returns:
        (handle, instance) 或 None
    """
    match = _URL_RE.search(feed_url)
    if match:
        return match.group(2), match.group(1)
    match = _ACCT_RE.search(feed_url)
    if match:
        return match.group(1), match.group(2)
    return None


def _account_handle(account: Dict[str, Any]) -> str:
    host = urlparse(account.get('url') or '').hostname
    username = account.get('username') or account.get('acct') or ''
    return f"{username}@{host}" if host else username


def _media(status: Dict[str, Any]) -> List[MediaAttachment]:
    media = []
    for att in status.get('media_attachments') or []:
        if not att.get('url'):
            continue
        media.append(MediaAttachment(
            type='video' if att.get('type') in ('video', 'gifv') else 'image',
            url=att['url'],
            thumbnail=att.get('preview_url'),
            alt=att.get('description')
        ))
    return media


def parse_status(status: Dict[str, Any]) -> RawItem:
    """
    Mastodon status -> RawItem

    Boost (reblog) 以原文內容與附件為主，RepostContext 記錄原作者與 boost 帳號。
    """
    reblog = status.get('reblog')
    content = reblog or status
    text = clean_html(content.get('content') or '', keep_breaks=True)

    repost_context = None
    if reblog:
        original = reblog.get('account') or {}
        booster = status.get('account') or {}
        repost_context = RepostContext(
            original_author=original.get('display_name') or original.get('username') or '',
            original_handle=_account_handle(original),
            reposted_by=booster.get('display_name') or booster.get('username')
        )

    return RawItem(
        title=text[:TITLE_LIMIT],
        description=text,
        link=status.get('url') or content.get('url') or content.get('uri') or '',
        published=status.get('created_at'),
        guid=status['id'],
        media=_media(content),
        repost_context=repost_context
    )


def parse_statuses(statuses: Any, source_name: str = "") -> List[RawItem]:
    """只保留 public / unlisted，單筆格式錯誤只丟棄該筆"""
    if not isinstance(statuses, list):
        return []

    items = []
    for status in statuses:
        try:
            if status.get('visibility') not in VISIBLE:
                continue
            items.append(parse_status(status))
        except Exception as e:
            logger.error(f"[Mastodon] {source_name}: dropped malformed status: {e}")
            continue
    return items


async def collect(publisher: Publisher, ctx: FetchContext) -> AdapterResult:
    """
    從單一 Mastodon 帳號收集貼文

    Args:
        publisher: Mastodon 來源
        ctx: FetchContext

    Returns:
        AdapterResult (失敗時為空)
    """
    info = extract_account(publisher.feed_url)
    if not info:
        logger.error(f"[Mastodon] Invalid feed_url format: {publisher.feed_url}")
        return AdapterResult()

    handle, instance = info
    cache_key = f"{handle}@{instance}"
    label = f"[Mastodon] {publisher.name} (@{cache_key})"

    if ctx.caches.should_skip(cache_key) or ctx.caches.in_backoff(cache_key):
        return AdapterResult()

    headers = {"Accept": "application/json", "User-Agent": ctx.settings.user_agent}
    timeout = ctx.settings.slow_request_timeout

    lookup = await fetch_url(
        ctx,
        f"https://{instance}/api/v1/accounts/lookup",
        params={"acct": handle},
        cache_key=cache_key,
        label=label,
        timeout=timeout,
        headers=headers,
        invalid_statuses=(404,)
    )
    if lookup is None:
        return AdapterResult()

    try:
        account = lookup.json()
        account_id = account['id']
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"{label}: Failed to parse account JSON: {e}")
        return AdapterResult()

    response = await fetch_url(
        ctx,
        f"https://{instance}/api/v1/accounts/{account_id}/statuses",
        params={"limit": ctx.settings.mastodon_limit, "exclude_replies": "true"},
        cache_key=cache_key,
        label=label,
        timeout=timeout,
        headers=headers,
        invalid_statuses=()
    )
    if response is None:
        return AdapterResult()

    try:
        statuses = response.json()
    except ValueError as e:
        logger.error(f"{label}: Failed to parse statuses JSON: {e}")
        return AdapterResult()

    return AdapterResult(items=parse_statuses(statuses, publisher.name), avatar_url=account.get('avatar'))
