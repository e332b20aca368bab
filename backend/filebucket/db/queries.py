"""Relational queries used by the token broker, lister, deletion coordinator and public reads."""
from datetime import datetime
from typing import NamedTuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.core.errors import AuthorizationError, ConflictError, NotFoundError
from filebucket.db.models import Bucket, Client, File, utcnow


class FileLocation(NamedTuple):
    """A live file joined with the names that make up its physical path."""

    file_id: str
    client_name: str
    bucket_name: str
    key: str
    uploaded_at: datetime | None

    @property
    def uploaded(self) -> bool:
        return self.uploaded_at is not None


async def get_client_by_client_id(db: AsyncSession, client_id: str) -> Client | None:
    result = await db.execute(select(Client).where(Client.client_id == client_id))
    return result.scalar_one_or_none()


async def get_client_name(db: AsyncSession, client_id: str) -> str | None:
    result = await db.execute(select(Client.name).where(Client.client_id == client_id))
    return result.scalar_one_or_none()


async def get_bucket_by_id(db: AsyncSession, bucket_id: int) -> Bucket | None:
    result = await db.execute(select(Bucket).where(Bucket.id == bucket_id))
    return result.scalar_one_or_none()


async def get_active_bucket_for_client(
    db: AsyncSession, bucket_id: int, client_id: str, action: str
) -> Bucket:
    """Bucket must exist (404), belong to client_id (403) and not be archived (409)."""
    bucket = await get_bucket_by_id(db, bucket_id)
    if bucket is None:
        raise NotFoundError("Bucket not found")
    if bucket.client_id != client_id:
        raise AuthorizationError("Access denied: bucket does not belong to your account")
    if bucket.archived:
        raise ConflictError(f"Cannot {action} an archived bucket")
    return bucket


async def get_public_bucket_by_name(db: AsyncSession, name: str) -> Bucket | None:
    """Bucket names are unique per client only; the earliest-created live bucket owns the public name."""
    result = await db.execute(
        select(Bucket)
        .where(Bucket.name == name, Bucket.archived.is_(False))
        .order_by(Bucket.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def insert_file(db: AsyncSession, **fields) -> File:
    file = File(**fields)
    db.add(file)
    await db.flush()
    return file


async def get_file_with_location(db: AsyncSession, file_id: str) -> tuple[File, str, Bucket] | None:
    """Return (file, client name, bucket) regardless of owner or tombstone."""
    result = await db.execute(
        select(File, Client.name, Bucket)
        .join(Client, File.client_id == Client.client_id)
        .join(Bucket, File.bucket_id == Bucket.id)
        .where(File.id == file_id)
    )
    row = result.one_or_none()
    if row is None:
        return None
    return row[0], row[1], row[2]


async def list_live_files_by_prefix(db: AsyncSession, bucket_id: int, prefix: str) -> list[File]:
    """Live files whose key starts with prefix (literal, not LIKE), ascending by key.

    An empty prefix returns every live file with a non-empty key.
    """
    stmt = select(File).where(File.bucket_id == bucket_id, File.deleted_at.is_(None))
    if prefix:
        stmt = stmt.where(File.key.startswith(prefix, autoescape=True))
    else:
        stmt = stmt.where(File.key != "")
    result = await db.execute(stmt.order_by(File.key.asc()))
    return list(result.scalars().all())


def _location_query(client_id: str):
    return (
        select(File.id, Client.name, Bucket.name, File.key, File.uploaded_at)
        .join(Client, File.client_id == Client.client_id)
        .join(Bucket, File.bucket_id == Bucket.id)
        .where(File.client_id == client_id, File.deleted_at.is_(None))
    )


async def get_live_locations_by_ids(
    db: AsyncSession, client_id: str, file_ids: list[str]
) -> dict[str, FileLocation]:
    """Only files owned by client_id and not deleted; anything else is simply absent from the map."""
    if not file_ids:
        return {}
    result = await db.execute(_location_query(client_id).where(File.id.in_(file_ids)))
    return {row[0]: FileLocation(*row) for row in result.all()}


async def get_live_locations_by_prefix(
    db: AsyncSession, client_id: str, bucket_id: int, prefix: str
) -> list[FileLocation]:
    """Recursive: every live file of the client in the bucket under prefix, ascending by key."""
    result = await db.execute(
        _location_query(client_id)
        .where(File.bucket_id == bucket_id, File.key.startswith(prefix, autoescape=True))
        .order_by(File.key.asc())
    )
    return [FileLocation(*row) for row in result.all()]


async def mark_file_deleted(db: AsyncSession, file_id: str) -> None:
    now = utcnow()
    await db.execute(
        update(File).where(File.id == file_id).values(deleted_at=now, updated_at=now)
    )


async def is_file_live(db: AsyncSession, file_id: str) -> bool:
    result = await db.execute(select(File.id).where(File.id == file_id, File.deleted_at.is_(None)))
    return result.scalar_one_or_none() is not None


async def mark_file_uploaded(db: AsyncSession, file_id: str, size: int) -> None:
    now = utcnow()
    await db.execute(
        update(File).where(File.id == file_id).values(file_size=size, uploaded_at=now, updated_at=now)
    )


async def supersede_files(db: AsyncSession, bucket_id: int, key: str, keep_id: str) -> int:
    """Tombstone other completed uploads of the same key; the latest completed upload wins.

    Records still waiting for their upload are left alone: their token may yet be redeemed.
    """
    now = utcnow()
    result = await db.execute(
        update(File)
        .where(
            File.bucket_id == bucket_id,
            File.key == key,
            File.id != keep_id,
            File.uploaded_at.is_not(None),
            File.deleted_at.is_(None),
        )
        .values(deleted_at=now, updated_at=now)
    )
    return result.rowcount or 0


async def get_pending_locations_created_before(db: AsyncSession, cutoff: datetime) -> list[FileLocation]:
    """Live files of every client registered before cutoff whose upload never completed, oldest first."""
    result = await db.execute(
        select(File.id, Client.name, Bucket.name, File.key, File.uploaded_at)
        .join(Client, File.client_id == Client.client_id)
        .join(Bucket, File.bucket_id == Bucket.id)
        .where(File.deleted_at.is_(None), File.uploaded_at.is_(None), File.created_at < cutoff)
        .order_by(File.created_at.asc())
    )
    return [FileLocation(*row) for row in result.all()]
