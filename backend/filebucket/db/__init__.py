from .models import (
    Client,
    Bucket,
    File,
)
from .session import get_db, async_session_factory, engine, create_schema

__all__ = [
    "Client",
    "Bucket",
    "File",
    "get_db",
    "async_session_factory",
    "engine",
    "create_schema",
]
