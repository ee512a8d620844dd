"""
Core data models for Region Pulse

Publisher (設定) -> RawItem (adapter 輸出) -> NormalizedItem (標準化紀錄)，
以及分類、活動度與 resilience cache 的資料結構。
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field, field_validator

from region_pulse.processing.region_patterns import REGIONS


Platform = Literal["rss", "bluesky", "telegram", "mastodon", "youtube"]
Confidence = Literal["high", "medium", "low"]
ActivityLevel = Literal["critical", "elevated", "normal"]
VerificationStatus = Literal["confirmed", "multiple-sources", "unverified"]


class Publisher(BaseModel):
    """
    外部來源設定 (每個帳號 / feed 一筆)

    Process 生命週期內不可變，從設定檔載入一次。
    """
    id: str = Field(..., description="來源 ID")
    name: str = Field(..., description="顯示名稱")
    platform: Platform = Field(default="rss", description="Wire protocol")
    feed_url: str = Field(..., description="Feed URL 或 handle")
    handle: Optional[str] = Field(None, description="顯示用 handle")
    region: Optional[str] = Field(None, description="預設 region (None=none)")
    region_specific: bool = Field(default=False, description="只屬於單一 region")
    tier: str = Field(default="news-org", description="可信度層級")
    confidence: int = Field(default=50, ge=1, le=100, description="可信度分數 (1-100)")
    posts_per_day: Optional[float] = Field(None, description="預期每日貼文數 (僅供 baseline)")
    feed_timezone: Optional[str] = Field(None, description="無時區時間戳記所用的時區")

    @field_validator("region", mode="before")
    @classmethod
    def _normalize_region(cls, value):
        # "all" / "none" 都代表沒有預設 region
        if value is None:
            return None
        if isinstance(value, str) and value.strip().lower() in ("", "all", "none"):
            return None
        if value not in REGIONS:
            raise ValueError(f"unknown region {value!r}, expected one of {', '.join(REGIONS)}")
        return value

    @property
    def label(self) -> str:
        """Log 用名稱: 有 handle 時附上 @handle"""
        if self.handle:
            return f"{self.name} (@{self.handle.lstrip('@')})"
        return self.name

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": "kyiv-independent",
                "name": "Kyiv Independent",
                "platform": "bluesky",
                "feed_url": "https://bsky.app/profile/kyivindependent.com",
                "region": "europe-russia",
                "tier": "news-org",
                "confidence": 85,
                "posts_per_day": 24.6
            }
        }


class MediaAttachment(BaseModel):
    """附件 (圖片 / 影片 / 外部連結卡片)"""
    type: Literal["image", "video", "external"]
    url: str
    thumbnail: Optional[str] = None
    title: Optional[str] = None
    alt: Optional[str] = None
    duration: Optional[int] = Field(None, description="影片長度 (秒)")

    class Config:
        frozen = True


class ReplyContext(BaseModel):
    """回覆對象"""
    parent_author: str
    parent_handle: Optional[str] = None
    parent_text: Optional[str] = None

    class Config:
        frozen = True


class RepostContext(BaseModel):
    """轉貼 / boost 來源"""
    original_author: str
    original_handle: Optional[str] = None
    reposted_by: Optional[str] = Field(None, description="轉貼者 (boost 帳號)")

    class Config:
        frozen = True


class RawItem(BaseModel):
    """Adapter 產出的中介格式，尚未分類"""
    title: str
    description: str = ""
    link: str
    published: Optional[str] = Field(None, description="原始時間字串")
    guid: Optional[str] = None
    media: List[MediaAttachment] = Field(default_factory=list)
    reply_context: Optional[ReplyContext] = None
    repost_context: Optional[RepostContext] = None


class AdapterResult(BaseModel):
    """單一 publisher 的抓取結果"""
    items: List[RawItem] = Field(default_factory=list)
    avatar_url: Optional[str] = None


class RegionMatch(BaseModel):
    """單一 region 對單一文字的評分結果 (不快取)"""
    region: str
    score: int
    matched_keywords: List[str] = Field(default_factory=list)
    confidence: Confidence = "low"


class RegionAssignment(BaseModel):
    """最終 region 決策"""
    region: Optional[str] = Field(None, description="None = unassigned")
    used_fallback: bool = Field(default=False, description="是否退回 publisher 預設 region")
    source_region: Optional[str] = Field(None, description="被覆寫的 publisher 預設 region")

    class Config:
        frozen = True


class RegionDetection(BaseModel):
    """detect_region 的完整輸出"""
    assignment: RegionAssignment
    matches: List[RegionMatch] = Field(default_factory=list)


class NormalizedItem(BaseModel):
    """
    標準化後的貼文 / 文章 (每篇一筆)

    建立後不可變；region 在建立時即已決定。
    """
    id: str = Field(..., description="穩定 ID: publisher_id + hash(guid or link)")
    title: str
    content: str = ""
    publisher: Publisher
    timestamp: datetime = Field(..., description="發布時間 (UTC tz-aware)")
    url: Optional[str] = None
    media: List[MediaAttachment] = Field(default_factory=list)
    reply_context: Optional[ReplyContext] = None
    repost_context: Optional[RepostContext] = None
    assignment: RegionAssignment
    verification_status: VerificationStatus = "unverified"
    avatar_url: Optional[str] = None

    class Config:
        frozen = True

    @property
    def region(self) -> Optional[str]:
        return self.assignment.region


class ActivityWindow(BaseModel):
    """單一 region 的活動度 (每次讀取時重新計算)"""
    region: str
    count: int
    baseline: int
    multiplier: float
    percent_change: int
    level: ActivityLevel = "normal"
    vs_normal: Literal["above", "below", "normal"] = "normal"


class PublisherActivity(BaseModel):
    """單一來源在觀察視窗內的發文量 (相對於自己的 posts_per_day)"""
    publisher_id: str
    baseline_posts_per_day: float
    recent_posts: int
    window_hours: int = 6
    anomaly_ratio: float = Field(0.0, description="recent_posts / 視窗期望篇數")
    is_anomalous: bool = False


class ResilienceCacheEntry(BaseModel):
    """Resilience cache 的單筆紀錄"""
    key: str
    tag: str = Field(..., description="錯誤分類")
    recorded_at: float = Field(..., description="紀錄時間 (clock seconds)")
    expires_at: float
    count: int = 1


class TrendingKeyword(BaseModel):
    keyword: str
    count: int
    regions: List[str] = Field(default_factory=list)


class TrendingResult(BaseModel):
    keywords: List[TrendingKeyword] = Field(default_factory=list)
    total_items_analyzed: int = 0
    items_with_matches: int = 0


class RunMetadata(BaseModel):
    """執行期中繼資料"""
    run_id: str
    generated_at: datetime
    config_hash: str
    publisher_count: int = 0
    status: str = Field(default="running")

    # 統計資訊
    stats: Dict[str, Any] = Field(default_factory=dict, description="抓取數、去重數、失敗數等")

    class Config:
        json_schema_extra = {
            "example": {
                "run_id": "run_20260213_001",
                "generated_at": "2026-02-13T11:00:00Z",
                "config_hash": "abc123",
                "publisher_count": 42,
                "status": "completed",
                "stats": {
                    "fetched_count": 500,
                    "deduped_count": 450,
                    "unassigned_count": 12
                }
            }
        }
