"""
RawItem -> NormalizedItem

解析時間戳記、分類 region、決定 verification status 並產生穩定 ID。
"""

from datetime import datetime
from typing import List, Optional
import logging

from region_pulse.models import NormalizedItem, Publisher, RawItem, VerificationStatus
from region_pulse.processing.region_detection import classify_item
from region_pulse.utils import hashing
from region_pulse.utils import time as time_utils

logger = logging.getLogger(__name__)

CONFIRMED_TIERS = ("official",)
MULTIPLE_SOURCE_TIERS = ("reporter", "news-org")


def verification_status(publisher: Publisher) -> VerificationStatus:
    """
    依來源層級與可信度推導 verification status

    Args:
        publisher: 來源

    Returns:
        confirmed / multiple-sources / unverified
    """
    if publisher.tier in CONFIRMED_TIERS or publisher.confidence >= 90:
        return "confirmed"
    if publisher.tier in MULTIPLE_SOURCE_TIERS or publisher.confidence >= 75:
        return "multiple-sources"
    return "unverified"


def normalize_item(
    raw: RawItem,
    publisher: Publisher,
    avatar_url: Optional[str] = None,
    now: Optional[datetime] = None
) -> Optional[NormalizedItem]:
    """
    建立單筆 NormalizedItem

    沒有 guid 也沒有 link 的項目無法產生穩定 ID，回傳 None。

    Args:
        raw: Adapter 輸出
        publisher: 來源
        avatar_url: 來源頭像
        now: 當前時間 (測試用)

    Returns:
        NormalizedItem 或 None
    """
    key = raw.guid or raw.link
    if not key:
        return None

    title = raw.title.strip()
    description = raw.description.strip()
    if not title and not description:
        return None

    timestamp = time_utils.parse_pub_date(raw.published, now=now, tz_name=publisher.feed_timezone)
    assignment = classify_item(title, description, publisher)

    return NormalizedItem(
        id=hashing.item_id(publisher.id, key),
        title=title or description[:200],
        content=description or title,
        publisher=publisher,
        timestamp=timestamp,
        url=raw.link or None,
        media=raw.media,
        reply_context=raw.reply_context,
        repost_context=raw.repost_context,
        assignment=assignment,
        verification_status=verification_status(publisher),
        avatar_url=avatar_url
    )


def normalize_items(
    raws: List[RawItem],
    publisher: Publisher,
    avatar_url: Optional[str] = None,
    now: Optional[datetime] = None
) -> List[NormalizedItem]:
    """標準化一個 publisher 的所有項目，單筆失敗只丟棄該筆"""
    items = []
    for raw in raws:
        try:
            item = normalize_item(raw, publisher, avatar_url, now)
        except Exception as e:
            logger.error(f"Error normalizing item from {publisher.name}: {e}")
            continue
        if item is None:
            logger.debug(f"Dropped item without id or text from {publisher.name}")
            continue
        items.append(item)
    return items
