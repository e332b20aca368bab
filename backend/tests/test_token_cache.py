"""In-memory token cache: TTL expiry and atomic take."""
import asyncio

import pytest

from filebucket.services.token_cache.memory import MemoryTokenCache


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_set_get_delete():
    cache = MemoryTokenCache()
    await cache.set("upload:abc", "payload", 60)
    assert await cache.get("upload:abc") == "payload"
    await cache.delete("upload:abc")
    assert await cache.get("upload:abc") is None


@pytest.mark.asyncio
async def test_entries_expire_after_ttl():
    clock = _Clock()
    cache = MemoryTokenCache(clock=clock)
    await cache.set("k", "v", 900)
    clock.now = 899.0
    assert await cache.get("k") == "v"
    clock.now = 900.0
    assert await cache.get("k") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_take_returns_value_once():
    cache = MemoryTokenCache()
    await cache.set("k", "v", 60)
    assert await cache.take("k") == "v"
    assert await cache.take("k") is None
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_concurrent_takes_single_winner():
    cache = MemoryTokenCache()
    await cache.set("k", "v", 60)
    results = await asyncio.gather(*(cache.take("k") for _ in range(10)))
    assert results.count("v") == 1
    assert results.count(None) == 9


@pytest.mark.asyncio
async def test_take_of_expired_entry_misses():
    clock = _Clock()
    cache = MemoryTokenCache(clock=clock)
    await cache.set("k", "v", 10)
    clock.now = 11.0
    assert await cache.take("k") is None
