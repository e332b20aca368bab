"""Storage backend factory. Only local disk is supported."""
from filebucket.services.storage.base import StorageBackend
from filebucket.services.storage.local import LocalStorage


def get_storage() -> StorageBackend:
    """Return the configured storage backend (rooted at UPLOADS_DIR)."""
    return LocalStorage()


__all__ = ["StorageBackend", "LocalStorage", "get_storage"]
