"""Bulk deletion by id list or by recursive key prefix.

Every requested id ends up in exactly one of deleted / missing / failed; one
failing object never stops the others. The disk removal happens first and the
row is tombstoned only once the bytes are gone, inside a savepoint so a
database error on one row does not poison the request's session.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.core.errors import ValidationError
from filebucket.core.metrics import record_delete_outcomes
from filebucket.db import queries
from filebucket.db.queries import FileLocation
from filebucket.services import paths
from filebucket.services.storage import StorageBackend

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    deleted: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class DeletionCoordinator:
    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage

    async def _delete_one(self, db: AsyncSession, location: FileLocation, result: DeleteResult) -> None:
        if not location.uploaded:
            # Nothing of its own on disk; the path may hold another record's upload of the same key
            result.missing.append(location.file_id)
            return
        file_path = paths.resolve(location.client_name, location.bucket_name, location.key)
        try:
            self._storage.remove(file_path)
        except FileNotFoundError:
            result.missing.append(location.file_id)
            return
        except OSError:
            logger.exception("Failed to remove %s (file_id=%s)", file_path, location.file_id)
            result.failed.append(location.file_id)
            return
        try:
            async with db.begin_nested():
                await queries.mark_file_deleted(db, location.file_id)
        except SQLAlchemyError:
            logger.exception("Removed %s but could not tombstone file_id=%s", file_path, location.file_id)
            result.failed.append(location.file_id)
            return
        result.deleted.append(location.file_id)

    async def delete_by_ids(self, db: AsyncSession, client_id: str, file_ids: list[str]) -> DeleteResult:
        """Ids that are unknown, foreign or already deleted are reported as missing."""
        unique_ids = list(dict.fromkeys(file_ids))
        locations = await queries.get_live_locations_by_ids(db, client_id, unique_ids)
        result = DeleteResult()
        for file_id in unique_ids:
            location = locations.get(file_id)
            if location is None:
                result.missing.append(file_id)
                continue
            await self._delete_one(db, location, result)
        self._report(client_id, result)
        return result

    async def delete_by_path(
        self, db: AsyncSession, client_id: str, bucket_id: int, path: str
    ) -> DeleteResult:
        """Delete every live object of client_id in the bucket under path, recursively."""
        await queries.get_active_bucket_for_client(db, bucket_id, client_id, "delete from")
        normalized = paths.normalize_prefix(path)
        if not normalized:
            raise ValidationError("path is required")
        locations = await queries.get_live_locations_by_prefix(db, client_id, bucket_id, normalized + "/")
        if not locations:
            raise ValidationError("No files found at the given path")
        result = DeleteResult()
        for location in locations:
            await self._delete_one(db, location, result)
        self._report(client_id, result)
        return result

    async def reap_orphans(self, db: AsyncSession, cutoff: datetime, dry_run: bool = False) -> list[str]:
        """Tombstone records registered before cutoff whose upload never completed.

        Bytes at the record's path do not save it: they may belong to another upload of the
        same key. cutoff should be at least one token TTL in the past so no redeemable upload
        is affected.
        """
        orphans = []
        for location in await queries.get_pending_locations_created_before(db, cutoff):
            orphans.append(location.file_id)
            if not dry_run:
                await queries.mark_file_deleted(db, location.file_id)
        logger.info("Orphaned upload records%s: %d", " (dry run)" if dry_run else "", len(orphans))
        return orphans

    @staticmethod
    def _report(client_id: str, result: DeleteResult) -> None:
        record_delete_outcomes(len(result.deleted), len(result.missing), len(result.failed))
        logger.info(
            "Delete for client_id=%s: deleted=%d missing=%d failed=%d",
            client_id, len(result.deleted), len(result.missing), len(result.failed),
        )
