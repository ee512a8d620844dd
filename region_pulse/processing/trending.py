"""
Trending Keywords

對每篇 item 重新執行 region detection (不帶預設 region)，
只取明確命中的關鍵字，統計出現頻率。
"""

from typing import Dict, Iterable, List
import logging

from region_pulse.models import NormalizedItem, TrendingKeyword, TrendingResult
from region_pulse.processing.region_detection import detect_region

logger = logging.getLogger(__name__)

# 正規化後的 key -> 顯示字串
DISPLAY_NAMES: Dict[str, str] = {
    'us': 'U.S.', 'eu': 'EU', 'uk': 'UK', 'un': 'UN',
    'nato': 'NATO', 'who': 'WHO', 'fbi': 'FBI', 'cia': 'CIA',
    'doj': 'DOJ', 'dhs': 'DHS', 'ice': 'ICE', 'nsa': 'NSA',
    'cdc': 'CDC', 'fda': 'FDA', 'epa': 'EPA', 'sec': 'SEC',
    'ftc': 'FTC', 'dod': 'DOD', 'nyc': 'NYC', 'la': 'LA',
    'dc': 'DC', 'uae': 'UAE', 'isis': 'ISIS', 'idf': 'IDF',
    'hamas': 'Hamas', 'cnn': 'CNN', 'bbc': 'BBC', 'nyt': 'NYT',
    'wsj': 'WSJ', 'ap': 'AP', 'gop': 'GOP', 'dnc': 'DNC',
    'rnc': 'RNC', 'scotus': 'SCOTUS', 'potus': 'POTUS',
    'flotus': 'FLOTUS', 'opec': 'OPEC', 'imf': 'IMF', 'wto': 'WTO',
    'cbp': 'CBP', 'dea': 'DEA', 'atf': 'ATF', 'nypd': 'NYPD',
}


def normalize_keyword(keyword: str) -> str:
    """"U.S." 與 "US" 都變成 "us" (刻意有損)"""
    return keyword.lower().replace('.', '').strip()


def format_keyword_display(keyword: str) -> str:
    normalized = normalize_keyword(keyword)
    if normalized in DISPLAY_NAMES:
        return DISPLAY_NAMES[normalized]
    keyword = keyword.strip()
    return keyword[:1].upper() + keyword[1:].lower()


def extract_keywords_from_item(item: NormalizedItem) -> List[str]:
    """
    取出單篇 item 的命中關鍵字

    Args:
        item: NormalizedItem

    Returns:
        所有 region 的 matched keywords (不含預設 region fallback)
    """
    detection = detect_region(f"{item.title} {item.content or ''}")
    keywords = []
    for match in detection.matches:
        keywords.extend(match.matched_keywords)
    return keywords


def count_keywords(items: Iterable[NormalizedItem]) -> Dict[str, Dict]:
    """
    統計關鍵字次數

    同一篇 item 中重複的關鍵字只計一次。

    Returns:
        normalized keyword -> {"count", "regions", "display_name"}
    """
    counts: Dict[str, Dict] = {}

    for item in items:
        seen_in_item = set()

        for keyword in extract_keywords_from_item(item):
            normalized = normalize_keyword(keyword)
            if normalized in seen_in_item:
                continue
            seen_in_item.add(normalized)

            entry = counts.setdefault(normalized, {
                'count': 0,
                'regions': [],
                'display_name': format_keyword_display(keyword)
            })
            entry['count'] += 1
            if item.region and item.region not in entry['regions']:
                entry['regions'].append(item.region)

    return counts


def get_trending_keywords(items: List[NormalizedItem], limit: int = 10) -> TrendingResult:
    """
    取得 Top N trending keywords

    Args:
        items: NormalizedItems
        limit: 最多回傳數

    Returns:
        TrendingResult (依次數遞減)
    """
    counts = count_keywords(items)

    keywords = sorted(
        (
            TrendingKeyword(keyword=data['display_name'], count=data['count'], regions=data['regions'])
            for data in counts.values()
        ),
        key=lambda k: k.count,
        reverse=True
    )[:limit]

    items_with_matches = sum(1 for item in items if extract_keywords_from_item(item))

    logger.info(f"Trending: {len(counts)} distinct keywords in {items_with_matches}/{len(items)} items")

    return TrendingResult(
        keywords=keywords,
        total_items_analyzed=len(items),
        items_with_matches=items_with_matches
    )
