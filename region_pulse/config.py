"""
Configuration schemas using Pydantic

定義完整的配置結構，包含 publishers、抓取逾時、resilience cache、
Telegram session 與活動度 baseline 設定。
"""

from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator
import os

from region_pulse.models import Publisher

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FetchConfig(BaseModel):
    """HTTP 抓取設定"""
    request_timeout: float = Field(default=5.0, description="一般請求逾時 (秒)")
    slow_request_timeout: float = Field(default=8.0, description="較慢協定的逾時 (Telegram/Mastodon/YouTube)")
    publisher_deadline: float = Field(default=30.0, description="單一 publisher 的總時限 (含 fallback)")
    max_concurrency: Optional[int] = Field(None, description="同時抓取上限 (None=不限)")
    user_agent: str = Field(default=BROWSER_USER_AGENT, description="瀏覽器 User-Agent")
    feed_user_agent: str = Field(
        default="Mozilla/5.0 (compatible; RegionPulse/1.0)",
        description="YouTube feed 用的 User-Agent"
    )
    bluesky_api_base: str = Field(default="https://public.api.bsky.app", description="Bluesky public API")
    bluesky_limit: int = Field(default=10, description="每個 Bluesky 帳號抓取數")
    mastodon_limit: int = Field(default=20, description="每個 Mastodon 帳號抓取數")


class CacheConfig(BaseModel):
    """Resilience cache TTL 設定"""
    invalid_ttl_seconds: float = Field(default=3600, description="無效 handle TTL")
    timeout_ttl_seconds: float = Field(default=1800, description="timeout 計數視窗")
    timeout_threshold: int = Field(default=2, description="連續 timeout 幾次後跳過")
    default_backoff_seconds: float = Field(default=60, description="未指定等待時間時的 backoff")


class TelegramConfig(BaseModel):
    """Telegram session 設定 (憑證存放於環境變數)"""
    api_id_env: str = Field(default="TELEGRAM_API_ID", description="API ID 環境變數名稱")
    api_hash_env: str = Field(default="TELEGRAM_API_HASH", description="API hash 環境變數名稱")
    session_env: str = Field(default="TELEGRAM_SESSION", description="StringSession 環境變數名稱")
    connect_timeout: float = Field(default=10.0, description="建立連線逾時 (秒)")
    message_limit: int = Field(default=20, description="每個頻道抓取訊息數")

    def get_credentials(self) -> Optional[Tuple[int, str, str]]:
        """取得 (api_id, api_hash, session)，任一缺少則回傳 None"""
        try:
            api_id = int(os.environ.get(self.api_id_env, "0") or 0)
        except ValueError:
            return None
        api_hash = os.environ.get(self.api_hash_env, "")
        session = os.environ.get(self.session_env, "")
        if not (api_id and api_hash and session):
            return None
        return api_id, api_hash, session


class ActivityConfig(BaseModel):
    """活動度 baseline 設定"""
    window_hours: int = Field(default=6, description="觀察視窗 (小時)")
    fallback_posts_per_day: float = Field(default=3.0, description="未量測來源的每日貼文數")
    default_region_baseline: int = Field(default=30, description="沒有來源的 region 所用 baseline")
    time_of_day_multipliers: List[float] = Field(
        default_factory=lambda: [0.4, 0.8, 1.5, 1.3],
        description="四個 6 小時 UTC 時段的倍率 (總和 4.0)"
    )
    excluded_regions: List[str] = Field(
        default_factory=lambda: ["latam", "asia", "africa"],
        description="來源覆蓋不足、一律 normal 的 region"
    )
    elevated_multiplier: float = Field(default=2.5)
    elevated_min_count: int = Field(default=25)
    critical_multiplier: float = Field(default=5.0)
    critical_min_count: int = Field(default=50)
    publisher_anomaly_ratio: float = Field(default=2.5, description="單一來源視為異常的倍率")
    publisher_min_count: int = Field(default=3, description="單一來源視為異常的最低篇數")

    @field_validator("time_of_day_multipliers")
    @classmethod
    def _check_multipliers(cls, value: List[float]) -> List[float]:
        if len(value) != 4:
            raise ValueError("time_of_day_multipliers needs exactly 4 slots")
        if abs(sum(value) - 4.0) > 1e-6:
            raise ValueError(f"time_of_day_multipliers must sum to 4.0 (got {sum(value)})")
        return value


class RegionPulseConfig(BaseModel):
    """完整設定 schema"""
    output_dir: str = Field(default="out", description="輸出目錄")
    trending_limit: int = Field(default=10, description="輸出 Top N trending keywords")

    publishers: List[Publisher] = Field(default_factory=list, description="Publisher 清單")

    fetch: FetchConfig = Field(default_factory=FetchConfig, description="抓取設定")
    cache: CacheConfig = Field(default_factory=CacheConfig, description="Resilience cache 設定")
    telegram: TelegramConfig = Field(default_factory=TelegramConfig, description="Telegram 設定")
    activity: ActivityConfig = Field(default_factory=ActivityConfig, description="活動度設定")

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "RegionPulseConfig":
        """從 YAML 檔案載入設定"""
        import yaml
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))
