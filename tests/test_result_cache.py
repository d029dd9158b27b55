import pytest

from suppscore.layers.result_cache import KEY_PREFIX, InMemoryStorage, ResultCache, cache_key
from suppscore.models.chain import ChainMeta, ChainProduct, ChainResult
from suppscore.models.product import ChainStep, StepStatus
from suppscore.models.score import ScorePayload


URL = "https://shop.example/products/quattro"
DAY = 24 * 60 * 60


def make_result(title="Quattro Protein", ingredients=None):
    return ChainResult(
        product=ChainProduct(id="abc123", title=title, ingredients=ingredients or ["Whey Protein Isolate"]),
        score=ScorePayload(score=72, purity=70, effectiveness=80, safety=75, value=60,
                           highlights=["25 g protein"], concerns=[]),
        meta=ChainMeta(chain=[ChainStep(provider="extract", status=StepStatus.OK, http_code=200)],
                       facts_source="supplement_facts", facts_tokens=4, ts=1),
    )


class BrokenStorage:
    async def get_item(self, key):
        raise RuntimeError("storage offline")

    async def set_item(self, key, value):
        raise RuntimeError("storage offline")

    async def remove_item(self, key):
        raise RuntimeError("storage offline")


def test_cache_key_uses_prefix_and_sha256():
    key = cache_key(URL)
    assert key.startswith(KEY_PREFIX)
    assert len(key) == len(KEY_PREFIX) + 64
    assert cache_key(URL) == key
    assert cache_key(URL + "?variant=2") != key


@pytest.mark.asyncio
async def test_hit_within_ttl_and_eviction_after(clock):
    storage = InMemoryStorage()
    cache = ResultCache(storage=storage, ttl_seconds=DAY, clock=clock)

    assert await cache.set(URL, make_result()) is True

    clock.advance(DAY - 1)
    hit = await cache.get(URL)
    assert hit is not None
    assert hit.product.title == "Quattro Protein"
    assert hit.meta.chain[0].provider == "extract"

    clock.advance(1)
    assert await cache.get(URL) is None
    assert len(storage) == 0


@pytest.mark.asyncio
async def test_trivial_results_are_not_stored(clock):
    storage = InMemoryStorage()
    cache = ResultCache(storage=storage, clock=clock)

    trivial = ChainResult(product=ChainProduct(id="abc123"))
    assert await cache.set(URL, trivial) is False
    assert len(storage) == 0
    assert await cache.get(URL) is None


@pytest.mark.asyncio
async def test_reads_return_independent_copies(clock):
    cache = ResultCache(clock=clock)
    await cache.set(URL, make_result())

    first = await cache.get(URL)
    first.product.title = "Changed"
    first.meta.cached = True

    second = await cache.get(URL)
    assert second.product.title == "Quattro Protein"
    assert second.meta.cached is False


@pytest.mark.asyncio
async def test_storage_failures_are_misses(clock):
    cache = ResultCache(storage=BrokenStorage(), clock=clock)

    assert await cache.set(URL, make_result()) is False
    assert await cache.get(URL) is None


@pytest.mark.asyncio
async def test_corrupt_entry_is_removed(clock):
    storage = InMemoryStorage()
    await storage.set_item(cache_key(URL), "{not json")
    cache = ResultCache(storage=storage, clock=clock)

    assert await cache.get(URL) is None
    assert len(storage) == 0


@pytest.mark.asyncio
async def test_entries_are_stored_as_camel_case_json(clock):
    storage = InMemoryStorage()
    cache = ResultCache(storage=storage, clock=clock)
    await cache.set(URL, make_result())

    raw = await storage.get_item(cache_key(URL))
    assert '"factsSource":"supplement_facts"' in raw
    assert '"timestamp":%d' % int(clock() * 1000) in raw
