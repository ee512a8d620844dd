"""
Shared collector plumbing

FetchContext 帶著一次 process 內共用的 HTTP client、resilience caches
與 Telegram session；fetch_url 統一處理逾時、錯誤狀態碼與快取紀錄。
"""

from typing import Any, Dict, Iterable, Optional
import logging

import httpx

from region_pulse.config import FetchConfig
from region_pulse.storage.resilience_cache import ResilienceCaches

logger = logging.getLogger(__name__)

NOT_FOUND_STATUSES = (401, 403, 404, 410)


class FetchContext:
    """Adapter 共用的執行環境 (由 FetchService 建立，測試可自行組裝)"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        caches: Optional[ResilienceCaches] = None,
        settings: Optional[FetchConfig] = None,
        telegram: Optional[Any] = None
    ):
        self.client = client
        self.caches = caches or ResilienceCaches()
        self.settings = settings or FetchConfig()
        self.telegram = telegram

    def browser_headers(self, accept: str) -> Dict[str, str]:
        """部分網站 (Telegram、Politico 等) 會擋非瀏覽器的 User-Agent"""
        return {
            "User-Agent": self.settings.user_agent,
            "Accept": accept,
            "Accept-Language": "en-US,en;q=0.9",
        }


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Retry-After header (秒數) -> float"""
    if not value:
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


async def fetch_url(
    ctx: FetchContext,
    url: str,
    *,
    cache_key: str,
    label: str,
    timeout: Optional[float] = None,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    invalid_statuses: Iterable[int] = NOT_FOUND_STATUSES,
    backoff_key: Optional[str] = None
) -> Optional[httpx.Response]:
    """
    GET 一個 URL；任何失敗都回傳 None 並更新 resilience caches

    - invalid_statuses -> invalid cache
    - 429 -> backoff cache (Retry-After)
    - timeout -> timeout cache

    Args:
        ctx: FetchContext
        url: 目標 URL
        cache_key: Resilience cache key (通常是 handle)
        label: Log 前綴
        timeout: 逾時秒數 (None = settings.request_timeout)
        headers: HTTP headers
        params: Query string
        invalid_statuses: 視為 not-found / unauthorized 的狀態碼
        backoff_key: 429 的 backoff key (None = cache_key)

    Returns:
        成功的 Response，或 None
    """
    timeout = timeout or ctx.settings.request_timeout

    try:
        response = await ctx.client.get(
            url,
            params=params,
            headers=headers,
            timeout=timeout,
            follow_redirects=True
        )
    except httpx.TimeoutException:
        count = ctx.caches.record_timeout(cache_key)
        if count >= ctx.caches.timeout_threshold:
            logger.warning(f"{label}: Timeout #{count} - skipping for now")
        else:
            logger.warning(f"{label}: Request timeout ({timeout:g}s)")
        return None
    except httpx.HTTPError as e:
        logger.error(f"{label}: {e.__class__.__name__}: {e}")
        logger.error(f"  URL: {url}")
        return None

    status = response.status_code

    if status in set(invalid_statuses):
        ctx.caches.mark_invalid(cache_key, f"HTTP {status}")
        logger.warning(f"{label}: HTTP {status}. Cached as invalid.")
        return None

    if status == 429:
        wait = ctx.caches.set_backoff(backoff_key or cache_key, parse_retry_after(response.headers.get("Retry-After")))
        logger.warning(f"{label}: Rate limited, backing off {wait:g}s")
        return None

    if status >= 500:
        logger.warning(f"{label}: Server error ({status}) - service may be temporarily unavailable")
        return None

    if not response.is_success:
        logger.error(f"{label}: HTTP {status}")
        return None

    return response
