"""TTL cache interface for capability-token payloads. Implementations: memory (single process) or Redis."""
from abc import ABC, abstractmethod


class TokenCache(ABC):
    """String values under namespaced keys, each with its own expiry. Expiry is the cache's job."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value, or None if absent or expired."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def take(self, key: str) -> str | None:
        """Atomic get-and-delete: of two concurrent takes on one key, at most one gets the value."""
        ...

    async def close(self) -> None:
        return None
