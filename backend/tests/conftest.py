"""Pytest fixtures: SQLite test DB, temp uploads dir, in-memory token cache, API clients."""
import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="filebucket-tests-")
# Must be set before filebucket is imported: the engine is created at import time
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["UPLOADS_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["METRICS_REQUIRE_ADMIN"] = "true"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.core.deps import get_storage_backend
from filebucket.core.security import hash_secret
from filebucket.db.models import Base, Bucket, Client
from filebucket.db.session import async_session_factory, engine, get_db
from filebucket.main import app
from filebucket.services.storage.local import LocalStorage
from filebucket.services.token_cache.memory import MemoryTokenCache

ADMIN_TOKEN = "test-admin-token"
CLIENT_SECRET = "secret_test-client-secret"
OTHER_SECRET = "secret_other-client-secret"


# pysqlite/aiosqlite need explicit BEGIN for SAVEPOINT (begin_nested) to behave
@event.listens_for(engine.sync_engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine.sync_engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


class FakeClock:
    """Monotonic clock for the memory cache that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with async_session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_cache(clock):
    return MemoryTokenCache(clock=clock)


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "uploads")


@pytest.fixture
async def client(db, storage, token_cache):
    async def get_db_override():
        yield db
    app.dependency_overrides[get_db] = get_db_override
    app.dependency_overrides[get_storage_backend] = lambda: storage
    # ASGITransport does not run lifespan, so the cache is installed directly
    app.state.token_cache = token_cache
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_client(db: AsyncSession, name: str, client_id: str, secret: str) -> Client:
    row = Client(name=name, client_id=client_id, client_secret_hash=hash_secret(secret))
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return row


@pytest.fixture
async def api_client(db: AsyncSession) -> Client:
    return await _make_client(db, "acme", "client_acme0001", CLIENT_SECRET)


@pytest.fixture
async def other_api_client(db: AsyncSession) -> Client:
    """Another client for cross-account tests."""
    return await _make_client(db, "globex", "client_globex001", OTHER_SECRET)


@pytest.fixture
def auth(api_client):
    return (api_client.client_id, CLIENT_SECRET)


@pytest.fixture
def other_auth(other_api_client):
    return (other_api_client.client_id, OTHER_SECRET)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
async def bucket(db: AsyncSession, api_client: Client) -> Bucket:
    row = Bucket(
        name="photos",
        client_id=api_client.client_id,
        cors_policy=[
            {
                "AllowedOrigins": ["https://*.example.com"],
                "AllowedMethods": ["GET", "HEAD"],
                "AllowedHeaders": [],
                "ExposeHeaders": ["ETag"],
            }
        ],
        public_paths=["public/*", "*.txt"],
        archived=False,
    )
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return row
