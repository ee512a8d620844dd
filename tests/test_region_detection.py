"""
Tests for region detection
"""

import pytest

from region_pulse.models import Publisher
from region_pulse.processing.region_detection import (
    classify_item,
    detect_region,
    get_message_region,
    score_region,
)
from region_pulse.processing.region_patterns import REGION_PATTERNS, REGIONS


def create_publisher(region=None, region_specific=False) -> Publisher:
    """Helper to create test publisher"""
    return Publisher(
        id="test-source",
        name="Test Source",
        feed_url="https://example.com/feed",
        region=region,
        region_specific=region_specific
    )


def test_table_covers_all_regions():
    """每個 region 都有三層 pattern"""
    assert set(REGION_PATTERNS) == set(REGIONS)
    for tiers in REGION_PATTERNS.values():
        assert set(tiers) == {"high", "medium", "low"}


def test_high_tier_only_resolves_with_high_confidence():
    """只有 high pattern 命中時以 high confidence 判定該 region"""
    detection = detect_region("Netanyahu visits Gaza")

    assert detection.assignment.region == "middle-east"
    assert detection.assignment.used_fallback is False
    top = detection.matches[0]
    assert top.region == "middle-east"
    assert top.score == 6
    assert top.confidence == "high"
    assert top.matched_keywords == ["Gaza", "Netanyahu"]


def test_two_points_everywhere_falls_back_to_default():
    """每個 region 都只有 2 分時退回 publisher 預設值"""
    text = "Pentagon Guyana Doha Madrid Nepal Botswana"

    detection = detect_region(text, "asia")
    assert len(detection.matches) == 6
    assert all(m.score == 2 and m.confidence == "low" for m in detection.matches)
    assert detection.assignment.region == "asia"
    assert detection.assignment.used_fallback is True


def test_two_points_everywhere_without_default_is_unassigned():
    detection = detect_region("Pentagon Guyana Doha Madrid Nepal Botswana", None)

    assert detection.assignment.region is None
    assert detection.assignment.used_fallback is False


def test_tie_between_home_and_foreign_goes_foreign():
    """本國與外國同分 (3 vs 3) 時外國勝出"""
    detection = detect_region("Congress discusses Kyiv", "us")

    scores = {m.region: m.score for m in detection.matches}
    assert scores == {"us": 3, "europe-russia": 3}
    assert detection.assignment.region == "europe-russia"


def test_home_strictly_dominates():
    """本國 5 分 vs 外國 3 分時維持本國"""
    detection = detect_region("Senate and Pentagon weigh Kyiv aid", "us")

    scores = {m.region: m.score for m in detection.matches}
    assert scores["us"] == 5
    assert scores["europe-russia"] == 3
    assert detection.assignment.region == "us"


def test_state_and_country_homograph_uses_tiebreak():
    """Georgia 同時是美國州名與國家，靠 tie-break 決定"""
    assert detect_region("Protests in Tbilisi, Georgia").assignment.region == "europe-russia"
    assert detect_region("Hurricane warning for Georgia").assignment.region == "us"


def test_case_sensitive_acronym():
    """ICE 不可命中小寫的 ice"""
    assert score_region("ICE agents detained two people", "us").score == 3
    assert score_region("ice on the roads this morning", "us").score == 0
    assert detect_region("ice on the roads this morning").assignment.region is None


def test_uppercase_text_matches_case_insensitive_patterns():
    detection = detect_region("KYIV UNDER ATTACK")

    assert detection.assignment.region == "europe-russia"
    assert detection.matches[0].matched_keywords == ["KYIV"]


def test_abbreviation_at_end_of_clause():
    """句尾的 U.S. 仍要命中"""
    match = score_region("Sanctions imposed by the U.S.", "us")

    assert match.score == 3
    assert "U.S." in match.matched_keywords


def test_bare_us_acronym_not_matched_inside_words():
    assert score_region("The US will respond", "us").score == 3
    assert score_region("Thus it begins", "us").score == 0
    assert score_region("join us tomorrow", "us").score == 0


@pytest.mark.parametrize("text", [
    "Kremlin says Putin will attend",
    "Houthi missiles target Red Sea shipping",
])
def test_classification_is_pure(text):
    """同一段文字分類兩次結果相同"""
    first = detect_region(text, "us")
    second = detect_region(text, "us")

    assert first == second


def test_matched_keywords_are_deduplicated():
    match = score_region("Kyiv, Kyiv and more Kyiv", "europe-russia")

    assert match.matched_keywords == ["Kyiv"]
    assert match.score == 3


def test_medium_score_without_high_hit():
    """中層兩個命中 = 4 分，medium confidence 仍可勝出"""
    detection = detect_region("Talks in Doha and Dubai")

    top = detection.matches[0]
    assert top.region == "middle-east"
    assert top.score == 4
    assert top.confidence == "medium"
    assert detection.assignment.region == "middle-east"


def test_classify_item_records_source_region():
    """偵測結果覆寫預設 region 時保留 source_region"""
    assignment = classify_item("Putin speaks in Moscow", "", create_publisher(region="us"))

    assert assignment.region == "europe-russia"
    assert assignment.source_region == "us"
    assert assignment.used_fallback is False


def test_classify_item_region_specific_publisher():
    publisher = create_publisher(region="middle-east", region_specific=True)

    assignment = classify_item("Putin speaks in Moscow", "", publisher)

    assert assignment.region == "middle-east"
    assert assignment.source_region is None


def test_classify_item_fallback_for_publisher_with_default():
    assignment = classify_item("Weather is nice today", "", create_publisher(region="latam"))

    assert assignment.region == "latam"
    assert assignment.used_fallback is True


def test_publisher_region_all_means_none():
    publisher = create_publisher(region="all")

    assert publisher.region is None
    assert classify_item("Weather is nice today", "", publisher).region is None


def test_get_message_region():
    assert get_message_region("Strikes near Kharkiv", None) == "europe-russia"
    assert get_message_region("Strikes near Kharkiv", "asia", region_specific=True) == "asia"
    assert get_message_region("hello", None) is None
