"""
Resilience caches

短 TTL 的記憶體表，記錄「這個 handle 目前壞掉 / 未授權 / 被限流」，
避免同一個 session 內重複打注定失敗的請求。

三個表互相獨立，皆為 advisory：沒有紀錄 = 照常嘗試。
過期紀錄在讀取時清除 (lazy)，也可以呼叫 sweep() 批次清除。
"""

import time
from typing import Callable, Dict, Optional
import logging

from region_pulse.models import ResilienceCacheEntry

logger = logging.getLogger(__name__)

INVALID_TTL_SECONDS = 60 * 60
TIMEOUT_TTL_SECONDS = 30 * 60
TIMEOUT_THRESHOLD = 2
DEFAULT_BACKOFF_SECONDS = 60


class ExpiringCache:
    """以 key 為索引、每筆紀錄各自過期的表"""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, ResilienceCacheEntry] = {}

    def get(self, key: str) -> Optional[ResilienceCacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry

    def set(
        self,
        key: str,
        tag: str,
        ttl_seconds: Optional[float] = None,
        count: int = 1
    ) -> ResilienceCacheEntry:
        now = self.clock()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        entry = ResilienceCacheEntry(
            key=key,
            tag=tag,
            recorded_at=now,
            expires_at=now + ttl,
            count=count
        )
        # 同一 key 同時寫入時 last-write-wins
        self._entries[key] = entry
        return entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def sweep(self) -> int:
        """清除所有過期紀錄，回傳清除筆數"""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


class ResilienceCaches:
    """
    Fetch 過程共用的三個 resilience 表

    (a) invalid: handle 確認無效 / 未授權 / 不存在 (1 小時)
    (b) timeouts: 短時間內重複 timeout，達門檻後跳過 (30 分鐘)
    (c) backoff: provider 指定的等待時間內先不走主要路徑
    """

    def __init__(
        self,
        invalid_ttl: float = INVALID_TTL_SECONDS,
        timeout_ttl: float = TIMEOUT_TTL_SECONDS,
        timeout_threshold: int = TIMEOUT_THRESHOLD,
        default_backoff: float = DEFAULT_BACKOFF_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.invalid = ExpiringCache(invalid_ttl, clock)
        self.timeouts = ExpiringCache(timeout_ttl, clock)
        self.backoff = ExpiringCache(default_backoff, clock)
        self.timeout_threshold = timeout_threshold
        self.default_backoff = default_backoff

    # (a) invalid handles

    def mark_invalid(self, key: str, tag: str) -> None:
        self.invalid.set(key, tag)

    def is_invalid(self, key: str) -> bool:
        return key in self.invalid

    # (b) repeated timeouts

    def record_timeout(self, key: str) -> int:
        """
        記錄一次 timeout

        Args:
            key: Handle

        Returns:
            目前視窗內的 timeout 次數
        """
        existing = self.timeouts.get(key)
        count = existing.count + 1 if existing else 1
        self.timeouts.set(key, "timeout", count=count)
        return count

    def is_timed_out(self, key: str) -> bool:
        entry = self.timeouts.get(key)
        return entry is not None and entry.count >= self.timeout_threshold

    # (c) provider backoff

    def set_backoff(self, key: str, seconds: Optional[float] = None, tag: str = "rate_limited") -> float:
        wait = self.default_backoff if seconds is None or seconds <= 0 else seconds
        self.backoff.set(key, tag, ttl_seconds=wait)
        return wait

    def in_backoff(self, key: str) -> bool:
        return key in self.backoff

    def should_skip(self, key: str) -> bool:
        """invalid 或 timeout 達門檻的 handle 直接跳過"""
        return self.is_invalid(key) or self.is_timed_out(key)

    def sweep(self) -> int:
        removed = self.invalid.sweep() + self.timeouts.sweep() + self.backoff.sweep()
        if removed:
            logger.debug(f"Swept {removed} expired resilience entries")
        return removed
