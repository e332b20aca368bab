"""Token cache factory: memory (dev/tests) or Redis. Redis client is loaded only when CACHE_BACKEND=redis."""
from filebucket.core.config import get_settings
from filebucket.services.token_cache.base import TokenCache
from filebucket.services.token_cache.memory import MemoryTokenCache


def create_token_cache() -> TokenCache:
    """Return the configured cache. Called once at app startup; the instance lives on app.state."""
    settings = get_settings()
    if settings.cache_backend == "redis":
        from filebucket.services.token_cache.redis_cache import RedisTokenCache
        return RedisTokenCache(settings.redis_url)
    return MemoryTokenCache()


__all__ = ["TokenCache", "MemoryTokenCache", "create_token_cache"]
