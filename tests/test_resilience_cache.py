"""
Tests for the resilience caches
"""

from region_pulse.storage.resilience_cache import ExpiringCache, ResilienceCaches


def test_invalid_handle_expires(caches, clock):
    caches.mark_invalid("ghost.bsky.social", "HTTP 400")

    assert caches.is_invalid("ghost.bsky.social")
    assert caches.should_skip("ghost.bsky.social")
    assert caches.invalid.get("ghost.bsky.social").tag == "HTTP 400"

    clock.advance(3600)
    assert not caches.is_invalid("ghost.bsky.social")


def test_timeouts_need_threshold(caches, clock):
    """一次 timeout 不跳過，第二次才跳過"""
    assert caches.record_timeout("slow") == 1
    assert not caches.is_timed_out("slow")

    assert caches.record_timeout("slow") == 2
    assert caches.is_timed_out("slow")
    assert caches.should_skip("slow")

    clock.advance(30 * 60)
    assert not caches.is_timed_out("slow")
    assert caches.record_timeout("slow") == 1


def test_backoff_uses_provider_wait(caches, clock):
    assert caches.set_backoff("busy", 5) == 5
    assert caches.in_backoff("busy")

    clock.advance(5)
    assert not caches.in_backoff("busy")


def test_backoff_default_wait(caches, clock):
    assert caches.set_backoff("busy", None) == 60
    assert caches.set_backoff("other", 0) == 60

    clock.advance(59)
    assert caches.in_backoff("busy")


def test_tables_are_independent(caches):
    """backoff 不影響 should_skip，invalid 不影響 backoff"""
    caches.set_backoff("a", 30)
    caches.mark_invalid("b", "HTTP 404")

    assert not caches.should_skip("a")
    assert not caches.in_backoff("b")


def test_last_write_wins(caches):
    caches.mark_invalid("x", "HTTP 404")
    caches.mark_invalid("x", "PrivateOrNotFound")

    assert caches.invalid.get("x").tag == "PrivateOrNotFound"


def test_sweep_removes_expired(caches, clock):
    caches.mark_invalid("old", "HTTP 404")
    caches.set_backoff("short", 10)
    clock.advance(1800)
    caches.mark_invalid("new", "HTTP 404")

    assert caches.sweep() == 1
    assert len(caches.invalid) == 2

    clock.advance(1800)
    assert caches.sweep() == 1
    assert caches.is_invalid("new")


def test_custom_ttls(clock):
    caches = ResilienceCaches(invalid_ttl=10, timeout_threshold=3, clock=clock)

    caches.mark_invalid("x", "HTTP 404")
    for _ in range(2):
        caches.record_timeout("y")

    assert not caches.is_timed_out("y")
    clock.advance(10)
    assert not caches.is_invalid("x")


def test_expiring_cache_contains(clock):
    cache = ExpiringCache(5, clock)
    cache.set("k", "tag")

    assert "k" in cache
    cache.delete("k")
    assert "k" not in cache
