"""
Tests for trending keyword extraction
"""

from datetime import datetime, timezone

from region_pulse.models import NormalizedItem, Publisher, RegionAssignment
from region_pulse.processing.trending import (
    count_keywords,
    format_keyword_display,
    get_trending_keywords,
    normalize_keyword,
)

NOW = datetime(2026, 2, 13, 12, 0, tzinfo=timezone.utc)


def create_item(item_id: str, title: str, region=None, content: str = "") -> NormalizedItem:
    """Helper to create test item"""
    publisher = Publisher(id="test-source", name="Test Source", feed_url="https://example.com/feed")
    return NormalizedItem(
        id=item_id,
        title=title,
        content=content,
        publisher=publisher,
        timestamp=NOW,
        assignment=RegionAssignment(region=region)
    )


def test_normalize_keyword():
    assert normalize_keyword("U.S.") == "us"
    assert normalize_keyword("US") == "us"
    assert normalize_keyword(" Kyiv ") == "kyiv"


def test_format_keyword_display():
    assert format_keyword_display("us") == "U.S."
    assert format_keyword_display("nato") == "NATO"
    assert format_keyword_display("KYIV") == "Kyiv"
    assert format_keyword_display("gaza") == "Gaza"


def test_abbreviation_variants_merge():
    """U.S. 與 US 合併為同一個關鍵字"""
    items = [
        create_item("1", "U.S. sanctions Russia", "europe-russia"),
        create_item("2", "US and Russia talks", "europe-russia"),
    ]

    result = get_trending_keywords(items)

    counts = {k.keyword: k.count for k in result.keywords}
    assert counts == {"U.S.": 2, "Russia": 2}
    assert result.total_items_analyzed == 2
    assert result.items_with_matches == 2


def test_keyword_counted_once_per_item():
    counts = count_keywords([create_item("1", "U.S. officials say US will respond", "us")])

    assert counts["us"]["count"] == 1


def test_items_without_matches():
    result = get_trending_keywords([
        create_item("1", "Local weather forecast"),
        create_item("2", "Strikes near Kharkiv", "europe-russia"),
    ])

    assert result.items_with_matches == 1
    assert [k.keyword for k in result.keywords] == ["Kharkiv"]


def test_regions_recorded_per_keyword():
    counts = count_keywords([
        create_item("1", "Putin meets Netanyahu", "middle-east"),
        create_item("2", "Putin in Moscow", "europe-russia"),
        create_item("3", "Putin speaks", None),
    ])

    assert counts["putin"]["count"] == 3
    assert counts["putin"]["regions"] == ["middle-east", "europe-russia"]


def test_publisher_default_region_is_not_a_keyword():
    """fallback 的預設 region 不產生任何關鍵字"""
    result = get_trending_keywords([create_item("1", "Weather is nice today", "latam")])

    assert result.keywords == []


def test_limit_and_order():
    items = [
        create_item("1", "Gaza ceasefire talks"),
        create_item("2", "Gaza aid convoy"),
        create_item("3", "Gaza and Beirut"),
        create_item("4", "Kyiv update"),
    ]

    result = get_trending_keywords(items, limit=2)

    assert len(result.keywords) == 2
    assert result.keywords[0].keyword == "Gaza"
    assert result.keywords[0].count == 3
