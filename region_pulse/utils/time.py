"""Time utilities for timezone-aware datetime handling."""

from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime
from typing import Optional, Union
import logging
import re

import pytz
from feedparser.datetimes import _parse_date as feedparser_parse_date

logger = logging.getLogger(__name__)

FUTURE_TOLERANCE = timedelta(hours=24)

# 時區縮寫 -> offset；較長的縮寫必須排在前面 (WEST 先於 WET)
TZ_ABBREVIATIONS = [
    ('CEST', '+0200'), ('EEST', '+0300'), ('WEST', '+0100'),
    ('CET', '+0100'), ('EET', '+0200'), ('WET', '+0000'),
    ('GMT', '+0000'), ('UTC', '+0000'),
    ('EDT', '-0400'), ('CDT', '-0500'), ('MDT', '-0600'), ('PDT', '-0700'),
    ('EST', '-0500'), ('CST', '-0600'), ('MST', '-0700'), ('PST', '-0800'),
]

_CDATA_RE = re.compile(r'<!\[CDATA\[([^\]]*)\]\]>')
_SHORT_NUMERIC_RE = re.compile(r'^(\d{2})-(\d{2})-(\d{2})\s+(\d{1,2}):(\d{2})$')


def utcnow() -> datetime:
    """取得當前 UTC 時間 (tz-aware)"""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    """
    轉換時間為 UTC tz-aware datetime

    Args:
        dt: 輸入時間
        tz_name: 原時區名稱 (若 dt 為 naive)

    Returns:
        UTC tz-aware datetime
    """
    if dt.tzinfo is None:
        # Naive datetime，需要指定時區
        if tz_name:
            tz = pytz.timezone(tz_name)
            dt = tz.localize(dt)
        else:
            # 假設為 UTC
            dt = dt.replace(tzinfo=timezone.utc)

    # 轉換為 UTC
    return dt.astimezone(timezone.utc)


def format_iso8601(dt: datetime) -> str:
    """格式化為 ISO8601 字串"""
    return dt.isoformat()


def replace_tz_abbreviation(value: str) -> str:
    """將第一個認得的時區縮寫換成數字 offset (最長優先)"""
    for abbr, offset in TZ_ABBREVIATIONS:
        pattern = re.compile(rf'\b{abbr}\b')
        if pattern.search(value):
            return pattern.sub(offset, value, count=1)
    return value


def _parse_date_string(value: str) -> Optional[datetime]:
    """
    依序嘗試已知格式；回傳值可能是 naive datetime

    Args:
        value: 已正規化的時間字串

    Returns:
        datetime or None
    """
    converted = replace_tz_abbreviation(value)

    # ISO 8601 / Atom
    try:
        return datetime.fromisoformat(converted.replace('Z', '+00:00'))
    except ValueError:
        pass

    # RFC 822 (RSS pubDate)
    try:
        parsed = parsedate_to_datetime(converted)
        if parsed is not None:
            return parsed
    except (TypeError, ValueError, IndexError, OverflowError):
        pass

    # "26-01-27 13:30" (YY-MM-DD HH:MM)
    match = _SHORT_NUMERIC_RE.match(value)
    if match:
        yy, mm, dd, hh, minute = (int(part) for part in match.groups())
        try:
            return datetime(2000 + yy, mm, dd, hh, minute)
        except ValueError:
            return None

    # feedparser 的其他 handler (asctime, W3DTF, 各語系格式)，結果為 UTC
    time_struct = feedparser_parse_date(value)
    if time_struct:
        return datetime(*time_struct[:6], tzinfo=timezone.utc)

    return None


def parse_pub_date(
    value: Union[str, datetime, None],
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None
) -> datetime:
    """
    解析 feed / API 的發布時間並修正未來時間

    無時區的 feed 常被當成 UTC 解析而顯得「在未來」。未來 24 小時內的時間
    直接換成 now；超過 24 小時視為無法解析，同樣換成 now 並記錄 warning。
    永不拋出例外。

    Args:
        value: 原始時間字串或 datetime
        now: 當前時間 (測試用)
        tz_name: 無時區字串所用的時區 (None = UTC)

    Returns:
        UTC tz-aware datetime
    """
    now = now or utcnow()

    if isinstance(value, datetime):
        parsed = value
    else:
        cleaned = _CDATA_RE.sub(r'\1', value or '')
        normalized = ' '.join(cleaned.split())
        try:
            parsed = _parse_date_string(normalized) if normalized else None
        except Exception as e:
            logger.warning(f"Date parser error for {value!r}: {e}")
            parsed = None

    if parsed is None:
        logger.warning(f"Failed to parse date: {value!r}, using current time")
        return now

    try:
        parsed = to_utc(parsed, tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown feed timezone {tz_name!r}, assuming UTC")
        parsed = to_utc(parsed)

    diff = parsed - now
    if timedelta(0) < diff < FUTURE_TOLERANCE:
        return now

    if diff >= FUTURE_TOLERANCE:
        logger.warning(f"Timestamp far in future ({value!r}), using current time")
        return now

    return parsed


def time_of_day_slot(dt: datetime) -> int:
    """取得 6 小時 UTC 時段 (0-3)"""
    return to_utc(dt).hour // 6
