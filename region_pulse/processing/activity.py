"""
Activity Baseline Engine

Baseline 由各來源的 posts_per_day 推導 (每日總和 / 4 = 6 小時)，
再依 UTC 時段倍率調整:

    UTC 時段       | 倍率
    00:00-06:00    | 0.4 (美歐皆為夜間)
    06:00-12:00    | 0.8 (歐洲早上)
    12:00-18:00    | 1.5 (美歐重疊)
    18:00-24:00    | 1.3 (美國下午)

倍率總和 4.0，每日總期望值不變。只依設定計算，不讀取任何儲存。
"""

import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional
import logging

from region_pulse.config import ActivityConfig
from region_pulse.models import ActivityWindow, NormalizedItem, Publisher, PublisherActivity
from region_pulse.processing.region_patterns import REGIONS
from region_pulse.utils import time as time_utils

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """0.5 一律進位 (Python 內建 round 為 banker's rounding)"""
    return int(math.floor(value + 0.5))


def effective_posts_per_day(publisher: Publisher, fallback: float = 3.0) -> float:
    """沒有量測值的來源使用保守預設值"""
    if publisher.posts_per_day and publisher.posts_per_day > 0:
        return publisher.posts_per_day
    return fallback


def compute_region_baselines(
    publishers: Iterable[Publisher],
    config: Optional[ActivityConfig] = None
) -> Dict[str, int]:
    """
    計算每個 region 的 6 小時平坦 baseline

    Args:
        publishers: 所有來源 (沒有預設 region 的不計入)
        config: ActivityConfig

    Returns:
        Region -> round(sum(ppd) / 4)
    """
    config = config or ActivityConfig()
    totals: Dict[str, float] = {region: 0.0 for region in REGIONS}

    for publisher in publishers:
        if publisher.region in totals:
            totals[publisher.region] += effective_posts_per_day(publisher, config.fallback_posts_per_day)

    return {region: round_half_up(total / 4) for region, total in totals.items()}


def time_of_day_multiplier(now: Optional[datetime] = None, config: Optional[ActivityConfig] = None) -> float:
    """目前 6 小時 UTC 時段的倍率"""
    config = config or ActivityConfig()
    now = now or time_utils.utcnow()
    return config.time_of_day_multipliers[time_utils.time_of_day_slot(now)]


def classify_level(multiplier: float, count: int, config: ActivityConfig) -> str:
    """同時需要倍率與最低篇數，避免低流量 region 的雜訊"""
    if multiplier >= config.critical_multiplier and count >= config.critical_min_count:
        return "critical"
    if multiplier >= config.elevated_multiplier and count >= config.elevated_min_count:
        return "elevated"
    return "normal"


def vs_normal(multiplier: float) -> str:
    if multiplier >= 1.5:
        return "above"
    if multiplier <= 0.5:
        return "below"
    return "normal"


def region_activity(
    region: str,
    count: int,
    raw_baseline: int,
    tod_multiplier: float,
    config: Optional[ActivityConfig] = None
) -> ActivityWindow:
    """
    計算單一 region 的 ActivityWindow

    Args:
        region: Region ID
        count: 視窗內的貼文數
        raw_baseline: 平坦 6 小時 baseline (0 = 使用預設值)
        tod_multiplier: 時段倍率
        config: ActivityConfig

    Returns:
        ActivityWindow
    """
    config = config or ActivityConfig()
    raw = raw_baseline or config.default_region_baseline
    baseline = max(1, round_half_up(raw * tod_multiplier))

    multiplier = round_half_up(count / baseline * 10) / 10
    percent_change = round_half_up((count - baseline) / baseline * 100)

    if region in config.excluded_regions:
        level = "normal"
    else:
        level = classify_level(multiplier, count, config)

    return ActivityWindow(
        region=region,
        count=count,
        baseline=baseline,
        multiplier=multiplier,
        percent_change=percent_change,
        level=level,
        vs_normal=vs_normal(multiplier)
    )


def calculate_region_activity(
    items: Iterable[NormalizedItem],
    baselines: Dict[str, int],
    now: Optional[datetime] = None,
    config: Optional[ActivityConfig] = None
) -> Dict[str, ActivityWindow]:
    """
    計算所有 region 的活動度 (單次走訪)

    items 應已過濾至觀察視窗 (見 filter_window)。

    Args:
        items: NormalizedItems
        baselines: compute_region_baselines 的結果
        now: 當前時間 (決定時段倍率)
        config: ActivityConfig

    Returns:
        Region -> ActivityWindow
    """
    config = config or ActivityConfig()

    counts: Dict[str, int] = {}
    for item in items:
        if item.region:
            counts[item.region] = counts.get(item.region, 0) + 1

    tod = time_of_day_multiplier(now, config)

    activity = {}
    for region in REGIONS:
        activity[region] = region_activity(
            region,
            counts.get(region, 0),
            baselines.get(region, 0),
            tod,
            config
        )
        if activity[region].level != "normal":
            window = activity[region]
            logger.info(f"Region {region}: {window.level} "
                        f"({window.count} posts vs baseline {window.baseline}, {window.multiplier}x)")

    return activity


def filter_window(
    items: Iterable[NormalizedItem],
    hours: int = 6,
    now: Optional[datetime] = None
) -> List[NormalizedItem]:
    """只保留最近 N 小時的 items"""
    now = now or time_utils.utcnow()
    cutoff = now - timedelta(hours=hours)
    return [item for item in items if item.timestamp >= cutoff]


def calculate_publisher_activity(
    items: Iterable[NormalizedItem],
    config: Optional[ActivityConfig] = None
) -> Dict[str, PublisherActivity]:
    """
    偵測單一來源的發文暴增

    與 region 活動度使用同一個視窗與 posts_per_day，但不套用時段倍率:
    期望篇數 = ppd / (24 / window_hours)，ratio 取到小數一位。
    ratio 與篇數都達門檻才標記為異常，避免低流量來源的雜訊。

    Args:
        items: 已過濾至觀察視窗的 NormalizedItems
        config: ActivityConfig

    Returns:
        Publisher ID -> PublisherActivity (只包含視窗內有貼文的來源)
    """
    config = config or ActivityConfig()

    counts: Dict[str, int] = {}
    publishers: Dict[str, Publisher] = {}
    for item in items:
        publisher_id = item.publisher.id
        counts[publisher_id] = counts.get(publisher_id, 0) + 1
        publishers.setdefault(publisher_id, item.publisher)

    activity = {}
    for publisher_id, count in counts.items():
        baseline = effective_posts_per_day(publishers[publisher_id], config.fallback_posts_per_day)
        expected = baseline / (24 / config.window_hours)
        ratio = round_half_up(count / expected * 10) / 10 if expected > 0 else 0.0

        profile = PublisherActivity(
            publisher_id=publisher_id,
            baseline_posts_per_day=baseline,
            recent_posts=count,
            window_hours=config.window_hours,
            anomaly_ratio=ratio,
            is_anomalous=ratio >= config.publisher_anomaly_ratio and count >= config.publisher_min_count
        )
        if profile.is_anomalous:
            logger.info(f"Publisher {publishers[publisher_id].label}: {count} posts in "
                        f"{config.window_hours}h ({ratio}x its usual rate)")
        activity[publisher_id] = profile

    return activity
