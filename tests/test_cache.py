import asyncio

import pytest

from translatebot.shared.cache import TranslationCache


def test_put_then_get_returns_value(clock):
    cache = TranslationCache(capacity=10, ttl=3600, clock=clock)
    cache.put("bonjour", "fr", "en", "hello")

    assert cache.get("bonjour", "fr", "en") == "hello"
    assert cache.get("bonjour", "de", "en") is None


def test_inserting_past_capacity_evicts_least_recently_used(clock):
    cache = TranslationCache(capacity=2, ttl=3600, clock=clock)
    cache.put("a", "fr", "en", "A")
    cache.put("b", "fr", "en", "B")
    # Touch "a" so "b" becomes the oldest
    assert cache.get("a", "fr", "en") == "A"
    cache.put("c", "fr", "en", "C")

    assert len(cache) == 2
    assert cache.get("b", "fr", "en") is None
    assert cache.get("a", "fr", "en") == "A"
    assert cache.get("c", "fr", "en") == "C"
    assert cache.stats()["evictions"] == 1


def test_entries_expire_after_ttl(clock):
    cache = TranslationCache(capacity=10, ttl=3600, clock=clock)
    cache.put("hola", "es", "en", "hello")

    clock.advance(3599)
    assert cache.get("hola", "es", "en") == "hello"

    clock.advance(2)
    assert cache.get("hola", "es", "en") is None


def test_overwrite_resets_timestamp(clock):
    cache = TranslationCache(capacity=10, ttl=100, clock=clock)
    cache.put("hola", "es", "en", "hi")
    clock.advance(90)
    cache.put("hola", "es", "en", "hello")
    clock.advance(50)

    assert cache.get("hola", "es", "en") == "hello"


def test_sweep_removes_only_expired_entries(clock):
    cache = TranslationCache(capacity=10, ttl=100, clock=clock)
    cache.put("old", "fr", "en", "x")
    clock.advance(60)
    cache.put("new", "fr", "en", "y")
    clock.advance(50)

    assert cache.sweep_expired() == 1
    assert len(cache) == 1
    assert cache.get("new", "fr", "en") == "y"
    assert cache.stats()["expired"] == 1


def test_zero_capacity_disables_caching(clock):
    cache = TranslationCache(capacity=0, ttl=100, clock=clock)
    cache.put("a", "fr", "en", "A")

    assert cache.get("a", "fr", "en") is None
    assert len(cache) == 0


def test_stats_track_hits_and_misses(clock):
    cache = TranslationCache(capacity=10, ttl=100, clock=clock)
    cache.put("a", "fr", "en", "A")
    cache.get("a", "fr", "en")
    cache.get("b", "fr", "en")

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 50.0
    assert stats["size"] == 1


@pytest.mark.asyncio
async def test_get_or_fill_coalesces_concurrent_misses(clock):
    cache = TranslationCache(capacity=10, ttl=100, clock=clock)
    calls = 0

    async def producer():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return "hello"

    results = await asyncio.gather(
        *(cache.get_or_fill("bonjour", "fr", "en", producer) for _ in range(5))
    )

    assert calls == 1
    assert [r[0] for r in results] == ["hello"] * 5
    assert sum(1 for _, cached in results if not cached) == 1


@pytest.mark.asyncio
async def test_get_or_fill_does_not_cache_failures(clock):
    cache = TranslationCache(capacity=10, ttl=100, clock=clock)

    async def failing():
        raise RuntimeError("backend down")

    with pytest.raises(RuntimeError):
        await cache.get_or_fill("bonjour", "fr", "en", failing)

    assert cache.get("bonjour", "fr", "en") is None


@pytest.mark.asyncio
async def test_get_or_fill_survives_many_distinct_misses(clock):
    cache = TranslationCache(capacity=2, ttl=100, clock=clock)

    async def producer():
        return "translated"

    for i in range(10):
        result = await cache.get_or_fill(f"text {i}", "fr", "en", producer)
        assert result == ("translated", False)

    assert len(cache._locks) <= 4
