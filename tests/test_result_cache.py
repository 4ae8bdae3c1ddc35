"""Tests for the bounded, time-limited search result cache."""

import pytest

from readsync.readalong.result_cache import CacheKey, ResultCache

from conftest import make_result


def make_cache(clock, **kwargs):
    options = dict(max_size=5, cleanup_threshold=3, max_age=300.0, clock=clock)
    options.update(kwargs)
    return ResultCache(**options)


def test_store_and_get(clock):
    cache = make_cache(clock)
    key = CacheKey("doc", 0, "abc")
    result = make_result(0, 0, 10, 10)

    entry = cache.store(key, result)

    assert cache.get(key) is entry
    assert entry.result == result
    assert entry.page_index == 0
    assert key in cache
    assert len(cache) == 1


def test_keys_are_partitioned_by_document_and_page(clock):
    cache = make_cache(clock)
    cache.store(CacheKey("doc", 0, "abc"), make_result(0, 0, 10, 10))

    assert cache.get(CacheKey("other", 0, "abc")) is None
    assert cache.get(CacheKey("doc", 1, "abc")) is None


def test_entries_expire_after_max_age(clock):
    cache = make_cache(clock)
    key = CacheKey("doc", 0, "abc")
    cache.store(key, make_result(0, 0, 10, 10))

    clock.advance(300.0)
    assert cache.get(key) is not None

    clock.advance(0.5)
    assert cache.get(key) is None
    assert len(cache) == 0


def test_cleanup_keeps_newest_entries(clock):
    cache = make_cache(clock)
    keys = [CacheKey("doc", 0, f"s{i}") for i in range(5)]
    for key in keys:
        cache.store(key, make_result(0, 0, 10, 10))
        clock.advance(1.0)

    new_key = CacheKey("doc", 0, "new")
    cache.store(new_key, make_result(0, 0, 10, 10))

    assert len(cache) == 4
    assert new_key in cache
    assert keys[0] not in cache
    assert keys[1] not in cache
    assert all(key in cache for key in keys[2:])


def test_cleanup_purges_expired_first(clock):
    cache = make_cache(clock, max_age=10.0)
    for i in range(5):
        cache.store(CacheKey("doc", 0, f"s{i}"), make_result(0, 0, 10, 10))
    clock.advance(11.0)

    cache.store(CacheKey("doc", 0, "fresh"), make_result(0, 0, 10, 10))

    assert len(cache) == 1


def test_overwriting_a_key_does_not_trigger_cleanup(clock):
    cache = make_cache(clock)
    keys = [CacheKey("doc", 0, f"s{i}") for i in range(5)]
    for key in keys:
        cache.store(key, make_result(0, 0, 10, 10))

    cache.store(keys[0], make_result(5, 5, 15, 15))

    assert len(cache) == 5


def test_size_never_exceeds_max(clock):
    cache = make_cache(clock)
    for i in range(50):
        cache.store(CacheKey("doc", i % 3, f"s{i}"), make_result(0, 0, 10, 10))
        clock.advance(0.1)
        assert len(cache) <= 5


def test_invalidate_all(clock):
    cache = make_cache(clock)
    cache.store(CacheKey("doc", 0, "abc"), make_result(0, 0, 10, 10))

    cache.invalidate_all()

    assert len(cache) == 0


def test_threshold_must_be_below_max_size(clock):
    with pytest.raises(ValueError):
        ResultCache(max_size=10, cleanup_threshold=10, clock=clock)


def test_defaults_come_from_config():
    cache = ResultCache()
    assert cache.max_size == 100
    assert cache.cleanup_threshold == 80
    assert cache.max_age == 300
