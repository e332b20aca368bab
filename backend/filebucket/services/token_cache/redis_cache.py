"""Redis token cache. Imported only when CACHE_BACKEND=redis (no redis client needed in memory mode)."""
from __future__ import annotations

from filebucket.core.config import get_settings
from filebucket.services.token_cache.base import TokenCache


def _get_client(url: str):
    import redis.asyncio as aioredis
    return aioredis.from_url(url, decode_responses=True)


class RedisTokenCache(TokenCache):
    """SET EX for expiry, GETDEL for one-time redemption (Redis >= 6.2)."""

    def __init__(self, url: str | None = None) -> None:
        self._url = url or get_settings().redis_url
        self._client = _get_client(self._url)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(key, value, ex=ttl_seconds)

    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def take(self, key: str) -> str | None:
        return await self._client.getdel(key)

    async def close(self) -> None:
        await self._client.aclose()
