"""In-process token cache for dev and tests. Entries expire lazily on access."""
import time
from collections.abc import Callable

from filebucket.services.token_cache.base import TokenCache


class MemoryTokenCache(TokenCache):
    """Dict-backed cache. Only valid with a single worker process; use Redis otherwise."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._clock = clock

    def _live_value(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)

    async def get(self, key: str) -> str | None:
        return self._live_value(key)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def take(self, key: str) -> str | None:
        # No await between read and pop, so this is atomic on the event loop
        value = self._live_value(key)
        if value is not None:
            self._entries.pop(key, None)
        return value

    def __len__(self) -> int:
        return len(self._entries)
