import pytest

from processor.context import ContextCache, MarketContextCache, compress_market_context
from processor.models import MarketSnapshot
from tests.fakes import FakeStore


@pytest.fixture
def cache(clock, test_settings):
    return ContextCache(clock=clock, settings=test_settings)


def test_entry_readable_until_expiry(cache, clock):
    cache.set("k", "v", ttl_seconds=60)

    clock.advance(60)
    assert cache.get("k") == "v"

    clock.advance(1)
    assert cache.get("k") is None


def test_expired_read_evicts_and_counts(cache, clock):
    cache.set("k", "v", ttl_seconds=10)
    clock.advance(11)

    assert cache.get("k") is None
    stats = cache.stats()
    assert stats.evictions == 1
    assert stats.misses == 1
    assert stats.size == 0


def test_sweep_removes_only_expired(cache, clock):
    cache.set("short", 1, ttl_seconds=5)
    cache.set("long", 2, ttl_seconds=500)
    clock.advance(10)

    assert cache.sweep() == 1
    assert cache.sweep() == 0
    assert cache.stats().size == 1
    assert cache.get("long") == 2


def test_stats_hit_rate(cache):
    assert cache.stats().to_dict()["hit_rate"] == "N/A"

    cache.set("k", "v", ttl_seconds=60)
    cache.get("k")
    cache.get("k")
    cache.get("k")
    cache.get("missing")

    stats = cache.stats()
    assert (stats.hits, stats.misses) == (3, 1)
    assert stats.to_dict()["hit_rate"] == "75.0%"


def test_negative_ttl_rejected(cache):
    with pytest.raises(ValueError):
        cache.set("k", "v", ttl_seconds=-1)


def test_investor_context_uses_configured_ttl(cache, clock, downtown_investor):
    from processor.context import compress_investor_context

    context = compress_investor_context(downtown_investor)
    cache.set_cached_investor_context(context)

    clock.advance(167 * 3600)
    assert cache.get_cached_investor_context("inv-1") is context
    clock.advance(2 * 3600)
    assert cache.get_cached_investor_context("inv-1") is None


@pytest.mark.asyncio
async def test_market_miss_then_hit_without_store_call(cache):
    store = FakeStore()
    market_cache = MarketContextCache(cache, store)

    assert await market_cache.get_cached_market_context("org-1", "Dubai Marina") is None
    assert store.calls["get_market_snapshot"] == 1

    context = compress_market_context(MarketSnapshot(area="Dubai Marina", sentiment="bullish"))
    market_cache.set_cached_market_context("org-1", context)

    assert await market_cache.get_cached_market_context("org-1", "Dubai Marina") is context
    assert store.calls["get_market_snapshot"] == 1


@pytest.mark.asyncio
async def test_market_store_hit_is_written_back(cache, clock):
    store = FakeStore(snapshots={"Dubai Marina": MarketSnapshot(area="Dubai Marina", median_price_psf=2000)})
    market_cache = MarketContextCache(cache, store, ttl_hours=1)

    first = await market_cache.get_cached_market_context("org-1", "Dubai Marina")
    second = await market_cache.get_cached_market_context("org-1", "Dubai Marina")
    assert first is second
    assert store.calls["get_market_snapshot"] == 1

    clock.advance(3601)
    await market_cache.get_cached_market_context("org-1", "Dubai Marina")
    assert store.calls["get_market_snapshot"] == 2


@pytest.mark.asyncio
async def test_market_keys_are_scoped_by_org(cache):
    store = FakeStore(snapshots={"JVC": MarketSnapshot(area="JVC")})
    market_cache = MarketContextCache(cache, store)

    await market_cache.get_cached_market_context("org-1", "JVC")
    await market_cache.get_cached_market_context("org-2", "JVC")
    assert store.calls["get_market_snapshot"] == 2


@pytest.mark.asyncio
async def test_market_store_failure_returns_none(cache):
    store = FakeStore()
    store.fail_snapshots = True
    market_cache = MarketContextCache(cache, store)

    assert await market_cache.get_cached_market_context("org-1", "JVC") is None


@pytest.mark.asyncio
async def test_get_batch_dedupes_and_skips_missing(cache):
    store = FakeStore(snapshots={"JVC": MarketSnapshot(area="JVC")})
    market_cache = MarketContextCache(cache, store)

    contexts = await market_cache.get_batch("org-1", ["JVC", "JVC", "Palm Jumeirah"])
    assert list(contexts) == ["JVC"]
    assert store.calls["get_market_snapshot"] == 2
