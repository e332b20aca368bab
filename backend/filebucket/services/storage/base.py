"""Storage backend interface over relative object paths (<client name>/<bucket name>/<key>)."""
from abc import ABC, abstractmethod
from pathlib import Path


class StorageBackend(ABC):
    """Abstract storage: write, stat, locate and remove objects by relative path."""

    @abstractmethod
    def write_bytes(self, relative_path: str, data: bytes) -> int:
        """Create parent directories and write data, replacing any existing object. Return bytes written."""
        ...

    @abstractmethod
    def head_object(self, relative_path: str) -> dict:
        """Return metadata: content_length (int). Raise FileNotFoundError if missing or not a file."""
        ...

    @abstractmethod
    def absolute_path(self, relative_path: str) -> Path:
        """Location on disk, for streaming responses."""
        ...

    @abstractmethod
    def remove(self, relative_path: str) -> None:
        """Delete the object. Raise FileNotFoundError if absent, OSError on other failures."""
        ...

    def exists(self, relative_path: str) -> bool:
        try:
            self.head_object(relative_path)
        except FileNotFoundError:
            return False
        return True
