from .client import FileBucketClient

__all__ = ["FileBucketClient"]
