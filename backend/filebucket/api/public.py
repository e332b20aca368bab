"""Public reads: GET /files/{bucket_name}/{file_path} for keys matching the bucket's public paths.

Registered after the files router so fixed routes (/files/upload, /files/download, ...) win.
"""
import logging
import mimetypes

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.core.config import get_settings
from filebucket.core.deps import get_storage_backend
from filebucket.core.errors import AuthorizationError, NotFoundError
from filebucket.core.metrics import record_public_read
from filebucket.db import Bucket, get_db
from filebucket.db.queries import get_client_name, get_public_bucket_by_name
from filebucket.services import paths
from filebucket.services.cors import cors_headers
from filebucket.services.patterns import matches_any
from filebucket.services.storage import StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["public"])

DEFAULT_CONTENT_TYPE = "application/octet-stream"


async def _live_bucket(db: AsyncSession, bucket_name: str) -> Bucket:
    bucket = await get_public_bucket_by_name(db, bucket_name)
    if bucket is None:
        record_public_read("not_found")
        raise NotFoundError("Bucket not found")
    return bucket


@router.get("/{bucket_name}/{file_path:path}")
async def read_public_file(
    bucket_name: str,
    file_path: str,
    request: Request,
    storage: StorageBackend = Depends(get_storage_backend),
    db: AsyncSession = Depends(get_db),
):
    bucket = await _live_bucket(db, bucket_name)
    paths.validate_key(file_path, field="file path")
    if not matches_any(file_path, bucket.public_paths):
        record_public_read("forbidden")
        raise AuthorizationError("Access denied: file is not public")
    client_name = await get_client_name(db, bucket.client_id)
    if client_name is None:
        record_public_read("not_found")
        raise NotFoundError("File not found")
    path = storage.absolute_path(paths.resolve(client_name, bucket.name, file_path))
    if not path.is_file():
        record_public_read("not_found")
        raise NotFoundError("File not found")
    content_type, _ = mimetypes.guess_type(file_path)
    headers = {"Cache-Control": f"public, max-age={get_settings().public_cache_max_age_seconds}"}
    headers.update(cors_headers(bucket.cors_policy, request.headers.get("origin")))
    record_public_read("served")
    return FileResponse(path, media_type=content_type or DEFAULT_CONTENT_TYPE, headers=headers)


@router.options("/{bucket_name}/{file_path:path}")
async def preflight_public_file(
    bucket_name: str,
    file_path: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """CORS preflight: 204 with the matching rule's headers, 403 when no rule admits the origin."""
    bucket = await _live_bucket(db, bucket_name)
    headers = cors_headers(bucket.cors_policy, request.headers.get("origin"))
    if not headers:
        raise AuthorizationError("CORS origin not allowed")
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)
