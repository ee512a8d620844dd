"""
Deduplication logic

以 content-addressed item ID 去重 (同一 publisher 的同一 guid/permalink)，
合併後依時間由新到舊排序。
"""

from typing import List, Dict, Tuple
from region_pulse.models import NormalizedItem
import logging

logger = logging.getLogger(__name__)


def _prefer(item: NormalizedItem, existing: NormalizedItem) -> bool:
    """保留可信度高的，若相同則保留時間新的"""
    if item.publisher.confidence != existing.publisher.confidence:
        return item.publisher.confidence > existing.publisher.confidence
    return item.timestamp > existing.timestamp


def sort_newest_first(items: List[NormalizedItem]) -> List[NormalizedItem]:
    return sorted(items, key=lambda item: item.timestamp, reverse=True)


def deduplicate_items(items: List[NormalizedItem]) -> Tuple[List[NormalizedItem], Dict[str, int]]:
    """
    去重並排序

    Args:
        items: 所有 publisher 合併後的 items

    Returns:
        (去重且 newest-first 的 items, 統計資訊)
    """
    stats = {
        'original_count': len(items),
        'duplicates_by_id': 0,
        'final_count': 0
    }

    id_map: Dict[str, NormalizedItem] = {}

    for item in items:
        existing = id_map.get(item.id)
        if existing is None:
            id_map[item.id] = item
            continue

        stats['duplicates_by_id'] += 1
        if _prefer(item, existing):
            id_map[item.id] = item

    final_items = sort_newest_first(list(id_map.values()))
    stats['final_count'] = len(final_items)

    logger.info(f"Total dedupe: {stats['original_count']} -> {stats['final_count']} "
                f"({stats['duplicates_by_id']} duplicates)")

    return final_items, stats
