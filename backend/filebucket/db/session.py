"""Engine and per-request sessions. One transaction per request: committed on success, rolled back on error."""
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from filebucket.core.config import get_settings
from filebucket.db.models import Base


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {}
    # Long-lived pool against Postgres: drop connections the server closed
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


settings = get_settings()
engine = create_async_engine(settings.database_url, echo=settings.debug, **_engine_options(settings.database_url))
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_schema() -> None:
    """Create missing tables outside Alembic (dev seeding)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
