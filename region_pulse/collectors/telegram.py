"""
Telegram Channel Collector

兩條路徑，對外只有 ChannelSource.fetch_messages(handle) 一個介面:
- SessionChannelSource: 已授權的 telethon session (StringSession)，
  session 不可用、被 FloodWait 限流或出錯時，內部退回 scraper
- ScrapeChannelSource: 抓取公開預覽頁 https://t.me/s/<handle>

整個 process 共用一個 TelegramSession；建立連線只允許一個進行中的嘗試，
同時呼叫者等待同一個 connect task。
"""

import asyncio
import re
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from region_pulse.collectors.base import FetchContext, fetch_url
from region_pulse.config import TelegramConfig
from region_pulse.models import AdapterResult, MediaAttachment, Publisher, RawItem, RepostContext
from region_pulse.utils.text import clean_html

logger = logging.getLogger(__name__)

TITLE_LIMIT = 500
HTML_ACCEPT = "text/html,application/xhtml+xml"

_HANDLE_RE = re.compile(r't\.me/(?:s/)?([^/?]+)')
_AVATAR_RE = re.compile(r'tgme_page_photo_image[^>]*>[\s\S]*?<img[^>]*src="([^"]+)"')
_POST_RE = re.compile(r'data-post="([^"]+)"')
_TEXT_RE = re.compile(r'<div class="tgme_widget_message_text[^"]*"[^>]*>([\s\S]*?)</div>')
_DATETIME_RE = re.compile(r'datetime="([^"]+)"')
# 不存在或私人頻道仍回傳 200，頁面內容帶有這些標記
_MISSING_CHANNEL_MARKERS = ('tgme_page_context_bot', 'If you have <strong>Telegram</strong>')

AUTH_ERRORS = ('AUTHKEYUNREGISTERED', 'SESSIONREVOKED', 'USERDEACTIVATED')
NOT_FOUND_ERRORS = ('CHANNELPRIVATE', 'USERNAMENOTOCCUPIED')

_DIGITS_RE = re.compile(r'(\d+)')


def extract_handle(feed_url: str) -> Optional[str]:
    """
    https://t.me/s/DeepStateUA 或 https://t.me/DeepStateUA -> DeepStateUA

    也接受直接填寫 handle (@DeepStateUA)
    """
    match = _HANDLE_RE.search(feed_url)
    if match:
        return match.group(1)
    value = feed_url.strip().lstrip('@')
    if value and '/' not in value and ' ' not in value:
        return value
    return None


def parse_channel_html(html: str, handle: str) -> AdapterResult:
    """
    解析 t.me/s/<handle> 預覽頁

    Args:
        html: 頁面 HTML
        handle: 頻道 handle

    Returns:
        AdapterResult (含頻道頭像)
    """
    avatar_match = _AVATAR_RE.search(html)
    items = []

    # 每個 data-post 到下一個 data-post 之間是一則訊息；純圖片訊息沒有文字 div
    posts = list(_POST_RE.finditer(html))
    for index, post in enumerate(posts):
        end = posts[index + 1].start() if index + 1 < len(posts) else len(html)
        block = html[post.end():end]

        text_match = _TEXT_RE.search(block)
        text = clean_html(text_match.group(1), keep_breaks=True) if text_match else ''
        if not text:
            continue

        post_id = post.group(1)
        date_match = _DATETIME_RE.search(block)
        published = date_match.group(1) if date_match else None

        # "DeepStateUA/23100" -> "23100"
        message_num = post_id.rsplit('/', 1)[-1]
        items.append(RawItem(
            title=text[:TITLE_LIMIT],
            description=text,
            link=f"https://t.me/{handle}/{message_num}",
            published=published,
            guid=f"telegram-{post_id}"
        ))

    return AdapterResult(items=items, avatar_url=avatar_match.group(1) if avatar_match else None)


def parse_session_message(message: Any, handle: str) -> Optional[RawItem]:
    """
    telethon Message -> RawItem (沒有文字的訊息略過)

    Args:
        message: telethon Message
        handle: 頻道 handle

    Returns:
        RawItem 或 None
    """
    text = getattr(message, 'message', None) or ''
    if not text.strip():
        return None

    link = f"https://t.me/{handle}/{message.id}"
    date = getattr(message, 'date', None)

    media: List[MediaAttachment] = []
    msg_media = getattr(message, 'media', None)
    if msg_media is not None:
        # 照片需要另外下載，連到訊息本身
        if getattr(msg_media, 'photo', None) is not None:
            media.append(MediaAttachment(type='image', url=link))
        document = getattr(msg_media, 'document', None)
        if document is not None and (getattr(document, 'mime_type', None) or '').startswith('video/'):
            media.append(MediaAttachment(type='video', url=link))
        webpage = getattr(msg_media, 'webpage', None)
        if webpage is not None and getattr(webpage, 'url', None):
            media.append(MediaAttachment(
                type='external',
                url=webpage.url,
                title=getattr(webpage, 'title', None) or None
            ))

    repost_context = None
    fwd_from = getattr(message, 'fwd_from', None)
    if fwd_from is not None:
        repost_context = RepostContext(original_author=getattr(fwd_from, 'from_name', None) or 'Unknown')

    return RawItem(
        title=text[:TITLE_LIMIT],
        description=text,
        link=link,
        published=date.isoformat() if date else None,
        guid=f"telegram-{handle}/{message.id}",
        media=media,
        repost_context=repost_context
    )


def classify_session_error(error: Exception) -> str:
    """
    依例外名稱與訊息分類 telethon 錯誤

    Returns:
        "flood_wait" / "auth" / "not_found" / "other"
    """
    text = f"{type(error).__name__} {error}".upper().replace('_', '')
    if 'FLOODWAIT' in text:
        return 'flood_wait'
    if any(tag in text for tag in AUTH_ERRORS):
        return 'auth'
    if any(tag in text for tag in NOT_FOUND_ERRORS):
        return 'not_found'
    return 'other'


def flood_wait_seconds(error: Exception) -> Optional[float]:
    """FloodWaitError.seconds，或訊息中的秒數"""
    seconds = getattr(error, 'seconds', None)
    if isinstance(seconds, (int, float)) and seconds > 0:
        return float(seconds)
    match = _DIGITS_RE.search(str(error))
    return float(match.group(1)) if match else None


def _telethon_client(api_id: int, api_hash: str, session: str) -> Any:
    from telethon import TelegramClient
    from telethon.sessions import StringSession
    return TelegramClient(StringSession(session), api_id, api_hash, connection_retries=2)


class TelegramSession:
    """
    共用的 telethon session

    連線失敗 (逾時、憑證錯誤、session 被撤銷) 後停用，本 process 之後一律走 scraper。
    """

    def __init__(
        self,
        config: Optional[TelegramConfig] = None,
        credentials: Optional[Tuple[int, str, str]] = None,
        client_factory: Optional[Callable[[int, str, str], Any]] = None
    ):
        self.config = config or TelegramConfig()
        self.credentials = credentials if credentials is not None else self.config.get_credentials()
        self.client_factory = client_factory or _telethon_client
        self.disabled = False
        self._client: Any = None
        self._connect_task: Optional["asyncio.Task"] = None
        self._entities: Dict[str, Any] = {}

    @property
    def configured(self) -> bool:
        return self.credentials is not None

    @property
    def available(self) -> bool:
        return self.configured and not self.disabled

    async def get_client(self) -> Any:
        """
        取得已連線的 client；無法使用時回傳 None

        同時呼叫者共用同一個 connect task，單一呼叫者被取消不會中斷連線嘗試。
        """
        if not self.available:
            return None

        if self._client is not None and self._client.is_connected():
            return self._client

        if self._connect_task is None:
            self._connect_task = asyncio.ensure_future(self._connect())

        task = self._connect_task
        try:
            return await asyncio.shield(task)
        finally:
            if task.done() and self._connect_task is task:
                self._connect_task = None

    async def _connect(self) -> Any:
        api_id, api_hash, session = self.credentials
        try:
            if self._client is None:
                self._client = self.client_factory(api_id, api_hash, session)
            await asyncio.wait_for(self._client.connect(), timeout=self.config.connect_timeout)
        except Exception as e:
            logger.error(f"[Telegram] Failed to connect: {e!r}. Disabling session for this process.")
            await self.disable()
            return None

        logger.info("[Telegram] Session connected")
        return self._client

    async def resolve_entity(self, client: Any, handle: str) -> Any:
        """以快取避免重複 ResolveUsername RPC"""
        key = handle.lower()
        if key not in self._entities:
            self._entities[key] = await client.get_entity(handle)
        return self._entities[key]

    async def disable(self) -> None:
        self.disabled = True
        await self.disconnect()
        self._client = None

    async def disconnect(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.disconnect()
        except Exception as e:
            logger.debug(f"[Telegram] Error while disconnecting: {e!r}")


def scrape_backoff_key(handle: str) -> str:
    """t.me/s/ 的 429 與 session FloodWait 分開記錄"""
    return f"scrape:{handle}"


class ChannelSource:
    """Telegram 頻道訊息來源 (strategy 介面)"""

    async def fetch_messages(self, handle: str, source_name: str = "") -> AdapterResult:
        raise NotImplementedError


class ScrapeChannelSource(ChannelSource):
    """未授權的 HTML 預覽頁抓取"""

    def __init__(self, ctx: FetchContext):
        self.ctx = ctx

    async def fetch_messages(self, handle: str, source_name: str = "") -> AdapterResult:
        caches = self.ctx.caches
        label = f"[Telegram] {source_name} (@{handle})"

        backoff_key = scrape_backoff_key(handle)
        if caches.should_skip(handle) or caches.in_backoff(backoff_key):
            return AdapterResult()

        # /s/ 是不需要 JS 的靜態版本
        response = await fetch_url(
            self.ctx,
            f"https://t.me/s/{handle}",
            cache_key=handle,
            label=label,
            timeout=self.ctx.settings.slow_request_timeout,
            headers=self.ctx.browser_headers(HTML_ACCEPT),
            invalid_statuses=(404,),
            backoff_key=backoff_key
        )
        if response is None:
            return AdapterResult()

        html = response.text
        if any(marker in html for marker in _MISSING_CHANNEL_MARKERS):
            caches.mark_invalid(handle, "PrivateOrNotFound")
            logger.warning(f"{label}: Channel is private or doesn't exist. Cached as invalid.")
            return AdapterResult()

        return parse_channel_html(html, handle)


class SessionChannelSource(ChannelSource):
    """已授權 session，必要時退回 fallback (通常是 ScrapeChannelSource)"""

    def __init__(self, ctx: FetchContext, session: TelegramSession, fallback: ChannelSource):
        self.ctx = ctx
        self.session = session
        self.fallback = fallback

    async def fetch_messages(self, handle: str, source_name: str = "") -> AdapterResult:
        caches = self.ctx.caches

        # FloodWait 期間走 scraper，過期後再試一次 session
        if caches.in_backoff(handle):
            return await self.fallback.fetch_messages(handle, source_name)

        client = await self.session.get_client()
        if client is None:
            logger.warning(f"[Telegram] Session unavailable, falling back to scraper for @{handle}")
            return await self.fallback.fetch_messages(handle, source_name)

        try:
            entity = await self.session.resolve_entity(client, handle)
            messages = await client.get_messages(entity, limit=self.session.config.message_limit)
        except Exception as e:
            return await self._handle_error(e, handle, source_name)

        items = []
        for message in messages or []:
            try:
                item = parse_session_message(message, handle)
            except Exception as e:
                logger.error(f"[Telegram] @{handle}: dropped malformed message: {e}")
                continue
            if item is not None:
                items.append(item)

        if items:
            logger.info(f"[Telegram] @{handle}: {len(items)} posts via session")
        return AdapterResult(items=items)

    async def _handle_error(self, error: Exception, handle: str, source_name: str) -> AdapterResult:
        kind = classify_session_error(error)

        if kind == 'flood_wait':
            wait = self.ctx.caches.set_backoff(handle, flood_wait_seconds(error), tag="flood_wait")
            logger.warning(f"[Telegram] FloodWait {wait:g}s for @{handle}, using scraper")
            return await self.fallback.fetch_messages(handle, source_name)

        if kind == 'auth':
            logger.error(f"[Telegram] Session invalid: {error}. Disabling session, falling back to scraper.")
            await self.session.disable()
            return await self.fallback.fetch_messages(handle, source_name)

        if kind == 'not_found':
            self.ctx.caches.mark_invalid(handle, type(error).__name__)
            logger.warning(f"[Telegram] @{handle}: {error}. Cached as invalid.")
            return AdapterResult()

        logger.warning(f"[Telegram] @{handle} error: {error!r}. Falling back to scraper.")
        return await self.fallback.fetch_messages(handle, source_name)


def channel_source(ctx: FetchContext) -> ChannelSource:
    """依 session 狀態選擇 ChannelSource"""
    scraper = ScrapeChannelSource(ctx)
    session = ctx.telegram
    if session is not None and session.available:
        return SessionChannelSource(ctx, session, scraper)
    return scraper


async def collect(publisher: Publisher, ctx: FetchContext) -> AdapterResult:
    """
    從單一 Telegram 頻道收集訊息

    Args:
        publisher: Telegram 來源
        ctx: FetchContext

    Returns:
        AdapterResult (失敗時為空)
    """
    handle = extract_handle(publisher.feed_url)
    if not handle:
        logger.error(f"[Telegram] Invalid feed_url format: {publisher.feed_url}")
        return AdapterResult()

    if ctx.caches.is_invalid(handle):
        return AdapterResult()

    return await channel_source(ctx).fetch_messages(handle, publisher.name)
