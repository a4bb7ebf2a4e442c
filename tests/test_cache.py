import pytest

from rolecall.cache import TTLCache


def test_get_returns_value_within_ttl(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.put("imdb:person:nm1", "Jimmy Stewart")
    clock.advance(59.9)
    assert cache.get("imdb:person:nm1") == "Jimmy Stewart"


def test_entry_expires_at_ttl_but_is_kept(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.put("k", 1)
    clock.advance(60)
    assert cache.get("k") is None
    assert "k" not in cache
    assert len(cache) == 1


def test_overwrite_refreshes_timestamp(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.put("k", 1)
    clock.advance(50)
    cache.put("k", 2)
    clock.advance(50)
    assert cache.get("k") == 2


def test_eviction_removes_oldest_first(clock):
    cache = TTLCache(ttl=3600, max_entries=3, clock=clock)
    for key in ("a", "b", "c"):
        cache.put(key, key.upper())
        clock.advance(1)
    cache.put("d", "D")

    assert len(cache) == 3
    assert cache.keys() == ["b", "c", "d"]
    assert cache.get("a") is None


def test_eviction_on_equal_timestamps_follows_insertion_order(clock):
    cache = TTLCache(ttl=3600, max_entries=2, clock=clock)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.put("c", 3)
    assert cache.keys() == ["b", "c"]


def test_size_never_exceeds_bound(clock):
    cache = TTLCache(ttl=3600, max_entries=50, clock=clock)
    for i in range(120):
        cache.put(f"key-{i}", i)
        clock.advance(0.5)
        assert len(cache) <= 50
    assert cache.get("key-119") == 119
    assert cache.get("key-69") is None


def test_invalid_arguments():
    with pytest.raises(ValueError):
        TTLCache(ttl=-1)
    with pytest.raises(ValueError):
        TTLCache(max_entries=0)
