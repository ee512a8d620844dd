"""
Region Detection

依關鍵字 pattern 為文字評分，決定所屬的地緣政治 region。

流程:
1. 對每個 region 依 high (3) / medium (2) / low (1) 三層 pattern 計分
2. 依分數排序，只有分數 >= 3 或 high confidence 的 region 可以勝出
3. 美國受眾 tie-break：本國 (us) 與外國同分時外國勝出
4. 沒有足夠信心時退回 publisher 的預設 region

純函式，無 I/O、無狀態、不快取。
"""

from typing import List, Optional
import logging

from region_pulse.models import Publisher, RegionAssignment, RegionDetection, RegionMatch
from region_pulse.processing.region_patterns import (
    COMPILED_PATTERNS,
    HOME_REGION,
    REGIONS,
    TIER_WEIGHTS,
)

logger = logging.getLogger(__name__)

ELIGIBLE_SCORE = 3


def score_region(text: str, region: str) -> RegionMatch:
    """
    計算單一 region 的分數

    Args:
        text: 待分類文字
        region: Region ID

    Returns:
        RegionMatch (score, 去重後的 matched keywords, confidence)
    """
    patterns = COMPILED_PATTERNS[region]
    matched: List[str] = []
    score = 0
    high_hit = False

    for tier, weight in TIER_WEIGHTS.items():
        for pattern in patterns[tier]:
            match = pattern.search(text)
            if match:
                matched.append(match.group(0))
                score += weight
                if tier == "high":
                    high_hit = True

    if score >= 6 or high_hit:
        confidence = "high"
    elif score >= 3:
        confidence = "medium"
    else:
        confidence = "low"

    return RegionMatch(
        region=region,
        score=score,
        matched_keywords=list(dict.fromkeys(matched)),
        confidence=confidence
    )


def is_eligible(match: RegionMatch) -> bool:
    """分數 >= 3 或 high confidence 才能勝出"""
    return match.score >= ELIGIBLE_SCORE or match.confidence == "high"


def detect_region(text: str, default_region: Optional[str] = None) -> RegionDetection:
    """
    偵測文字所屬 region

    Args:
        text: 待分類文字
        default_region: Publisher 預設 region (None = 無)

    Returns:
        RegionDetection (assignment + 所有非零分 matches，依分數遞減)
    """
    matches = [score_region(text, region) for region in REGIONS]
    # sorted 為 stable，同分時維持 REGIONS 順序 (us 在最前)
    ranked = sorted(
        (m for m in matches if m.score > 0),
        key=lambda m: m.score,
        reverse=True
    )

    detected: Optional[str] = None

    if ranked and is_eligible(ranked[0]):
        top = ranked[0]
        detected = top.region

        # 同時提到本國與外國時，外國角度才是新聞；本國分數嚴格較高時維持本國
        if top.region == HOME_REGION and len(ranked) > 1:
            best_foreign = next(
                (m for m in ranked if m.region != HOME_REGION and is_eligible(m)),
                None
            )
            if best_foreign and best_foreign.score >= top.score:
                detected = best_foreign.region

    if detected:
        assignment = RegionAssignment(region=detected, used_fallback=False)
    elif default_region:
        assignment = RegionAssignment(region=default_region, used_fallback=True)
    else:
        assignment = RegionAssignment(region=None, used_fallback=False)

    return RegionDetection(assignment=assignment, matches=ranked)


def classify_item(title: str, content: str, publisher: Publisher) -> RegionAssignment:
    """
    為單篇貼文決定 RegionAssignment

    region_specific 的 publisher 一律使用其預設 region；
    偵測結果覆寫預設 region 時保留 source_region。

    Args:
        title: 標題
        content: 內文
        publisher: 來源

    Returns:
        RegionAssignment
    """
    if publisher.region_specific and publisher.region:
        return RegionAssignment(region=publisher.region)

    detection = detect_region(f"{title} {content}", publisher.region)
    assignment = detection.assignment

    if (
        publisher.region
        and not assignment.used_fallback
        and assignment.region != publisher.region
    ):
        return RegionAssignment(
            region=assignment.region,
            used_fallback=False,
            source_region=publisher.region
        )

    return assignment


def get_message_region(
    text: str,
    default_region: Optional[str],
    region_specific: bool = False
) -> Optional[str]:
    """只回傳 region (None = unassigned)"""
    if region_specific and default_region:
        return default_region
    return detect_region(text, default_region).assignment.region
