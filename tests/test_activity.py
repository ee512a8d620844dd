"""
Tests for the activity baseline engine
"""

from datetime import datetime, timedelta, timezone

import pytest

from region_pulse.config import ActivityConfig
from region_pulse.models import NormalizedItem, Publisher, RegionAssignment
from region_pulse.processing.activity import (
    calculate_publisher_activity,
    calculate_region_activity,
    compute_region_baselines,
    filter_window,
    region_activity,
    round_half_up,
    time_of_day_multiplier,
)

AFTERNOON = datetime(2026, 2, 13, 13, 0, tzinfo=timezone.utc)


def create_publisher(pid: str, region=None, posts_per_day=None) -> Publisher:
    """Helper to create test publisher"""
    return Publisher(
        id=pid,
        name=pid,
        feed_url=f"https://example.com/{pid}",
        region=region,
        posts_per_day=posts_per_day
    )


def create_items(region: str, count: int, now: datetime = AFTERNOON):
    """Helper to create N items assigned to region"""
    publisher = create_publisher("src", region)
    return [
        NormalizedItem(
            id=f"src-{region}-{i}",
            title=f"post {i}",
            publisher=publisher,
            timestamp=now - timedelta(minutes=i),
            assignment=RegionAssignment(region=region)
        )
        for i in range(count)
    ]


def test_round_half_up():
    """0.5 進位，不使用 banker's rounding"""
    assert round_half_up(2.5) == 3
    assert round_half_up(10.5) == 11
    assert round_half_up(0.45) == 0
    assert round_half_up(54.545) == 55


def test_baseline_from_posts_per_day():
    baselines = compute_region_baselines([create_publisher("a", "middle-east", 28)])

    assert baselines["middle-east"] == 7
    assert set(baselines) == {"us", "latam", "middle-east", "europe-russia", "asia", "africa"}
    assert baselines["asia"] == 0


def test_unmeasured_publisher_uses_fallback():
    """沒有 posts_per_day 的來源以 3 計；(3 + 7) / 4 = 2.5 -> 3"""
    baselines = compute_region_baselines([
        create_publisher("a", "us"),
        create_publisher("b", "us", 7),
    ])

    assert baselines["us"] == 3


def test_publishers_without_region_are_ignored():
    baselines = compute_region_baselines([create_publisher("a", None, 400)])

    assert all(value == 0 for value in baselines.values())


@pytest.mark.parametrize("hour,expected", [(3, 0.4), (9, 0.8), (13, 1.5), (23, 1.3)])
def test_time_of_day_multiplier(hour, expected):
    now = datetime(2026, 2, 13, hour, 0, tzinfo=timezone.utc)
    assert time_of_day_multiplier(now) == expected


def test_critical_spike():
    """baseline 7 * 1.5 = 10.5 -> 11；60 篇 = 5.5x"""
    window = region_activity("middle-east", 60, 7, 1.5)

    assert window.baseline == 11
    assert window.multiplier == 5.5
    assert window.percent_change == 445
    assert window.level == "critical"
    assert window.vs_normal == "above"


def test_elevated_spike():
    window = region_activity("middle-east", 40, 7, 1.5)

    assert window.multiplier == 3.6
    assert window.level == "elevated"


def test_high_multiplier_needs_minimum_count():
    """低流量 region 的倍率再高也不升級"""
    window = region_activity("us", 20, 1, 1.5)

    assert window.baseline == 2
    assert window.multiplier == 10.0
    assert window.level == "normal"
    assert window.vs_normal == "above"


def test_region_without_publishers_uses_default_baseline():
    window = region_activity("europe-russia", 10, 0, 1.0)

    assert window.baseline == 30


def test_excluded_region_never_escalates():
    window = region_activity("asia", 200, 7, 1.5)

    assert window.multiplier > 5
    assert window.level == "normal"


def test_zero_count_is_below_normal():
    window = region_activity("us", 0, 7, 1.5)

    assert window.multiplier == 0.0
    assert window.percent_change == -100
    assert window.vs_normal == "below"
    assert window.level == "normal"


def test_baseline_never_zero():
    window = region_activity("us", 3, 1, 0.4)

    assert window.baseline == 1


def test_calculate_region_activity_counts_by_assignment():
    baselines = compute_region_baselines([create_publisher("a", "middle-east", 28)])
    items = create_items("middle-east", 60) + create_items("us", 5)

    activity = calculate_region_activity(items, baselines, AFTERNOON)

    assert activity["middle-east"].count == 60
    assert activity["middle-east"].level == "critical"
    assert activity["us"].count == 5
    assert activity["africa"].count == 0
    assert len(activity) == 6


def test_custom_multipliers_must_sum_to_four():
    with pytest.raises(ValueError):
        ActivityConfig(time_of_day_multipliers=[1.0, 1.0, 1.0, 2.0])

    config = ActivityConfig(time_of_day_multipliers=[1.0, 1.0, 1.0, 1.0])
    assert time_of_day_multiplier(AFTERNOON, config) == 1.0


def test_filter_window():
    items = create_items("us", 3)
    old = create_items("us", 1, now=AFTERNOON - timedelta(hours=7))

    recent = filter_window(items + old, hours=6, now=AFTERNOON)

    assert len(recent) == 3


def create_publisher_items(publisher: Publisher, count: int, now: datetime = AFTERNOON):
    """Helper to create N items from a single publisher"""
    return [
        NormalizedItem(
            id=f"{publisher.id}-{i}",
            title=f"post {i}",
            publisher=publisher,
            timestamp=now - timedelta(minutes=i),
            assignment=RegionAssignment(region=publisher.region)
        )
        for i in range(count)
    ]


def test_publisher_surge_flagged():
    """ppd 4 -> 6 小時期望 1 篇；3 篇為 3.0x"""
    items = create_publisher_items(create_publisher("burst", "middle-east", 4), 3)

    activity = calculate_publisher_activity(items)

    profile = activity["burst"]
    assert profile.recent_posts == 3
    assert profile.baseline_posts_per_day == 4
    assert profile.window_hours == 6
    assert profile.anomaly_ratio == 3.0
    assert profile.is_anomalous


def test_publisher_surge_needs_ratio_and_count():
    items = (
        create_publisher_items(create_publisher("busy", "us", 8), 3)
        + create_publisher_items(create_publisher("quiet", "us", 2), 2)
    )

    activity = calculate_publisher_activity(items)

    # 3 / 2 = 1.5x，未達倍率
    assert activity["busy"].anomaly_ratio == 1.5
    assert not activity["busy"].is_anomalous
    # 2 / 0.5 = 4.0x，但篇數不足
    assert activity["quiet"].anomaly_ratio == 4.0
    assert not activity["quiet"].is_anomalous


def test_publisher_activity_uses_fallback_rate():
    """沒有 posts_per_day 的來源以 3/day 計算，ratio 取到小數一位"""
    items = create_publisher_items(create_publisher("unmeasured"), 1)

    activity = calculate_publisher_activity(items)

    assert activity["unmeasured"].baseline_posts_per_day == 3.0
    assert activity["unmeasured"].anomaly_ratio == 1.3


def test_publisher_activity_only_lists_active_publishers():
    assert calculate_publisher_activity([]) == {}


def test_publisher_surge_thresholds_configurable():
    items = create_publisher_items(create_publisher("busy", "us", 8), 3)
    config = ActivityConfig(publisher_anomaly_ratio=1.5, publisher_min_count=3)

    assert calculate_publisher_activity(items, config)["busy"].is_anomalous
