"""Files: signed upload/download URLs, token redemption, bulk delete."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.api.schemas import (
    DeleteFilesRequest,
    DeleteFilesResponse,
    DownloadUrlRequest,
    SignedUrlResponse,
    UploadResponse,
    UploadUrlRequest,
)
from filebucket.core.deps import (
    get_current_client,
    get_deletion_coordinator,
    get_storage_backend,
    get_token_broker,
)
from filebucket.core.errors import GoneError, NotFoundError, ValidationError
from filebucket.db import Client, get_db
from filebucket.db.queries import is_file_live, mark_file_uploaded, supersede_files
from filebucket.services.deletion import DeletionCoordinator
from filebucket.services.storage import StorageBackend
from filebucket.services.tokens import IssuedToken, TokenBroker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


def _signed_url_response(issued: IssuedToken) -> SignedUrlResponse:
    return SignedUrlResponse(file_id=issued.file_id, signed_url=issued.signed_url, expires_at=issued.expires_at)


@router.post("/signed-url", response_model=SignedUrlResponse)
async def create_upload_url(
    body: UploadUrlRequest,
    client: Client = Depends(get_current_client),
    broker: TokenBroker = Depends(get_token_broker),
    db: AsyncSession = Depends(get_db),
):
    """Register the file and return a one-time URL to upload at most file_size bytes to key."""
    issued = await broker.issue_upload(
        db,
        client,
        bucket_id=body.bucket_id,
        key=body.key,
        file_name=body.file_name,
        file_size=body.file_size,
        mimetype=body.mimetype,
        owner_entity_type=body.owner_entity_type,
        owner_entity_id=body.owner_entity_id,
    )
    return _signed_url_response(issued)


@router.api_route("/upload", methods=["POST", "PUT"], response_model=UploadResponse)
async def upload_file(
    request: Request,
    token: str = "",
    broker: TokenBroker = Depends(get_token_broker),
    storage: StorageBackend = Depends(get_storage_backend),
    db: AsyncSession = Depends(get_db),
):
    """Body = raw file bytes. No credentials: the token is the capability."""
    if not token:
        raise ValidationError("Missing upload token")
    declared = request.headers.get("content-length")
    await broker.check_upload_size(token, int(declared) if declared and declared.isdigit() else None)
    content = await request.body()
    if not content:
        raise ValidationError("No file content provided")
    payload = await broker.redeem_upload(token, len(content))
    if not await is_file_live(db, payload.file_id):
        # Reaped or deleted while the token was outstanding
        raise GoneError("File has been deleted")
    written = storage.write_bytes(payload.file_path, content)
    await mark_file_uploaded(db, payload.file_id, written)
    superseded = await supersede_files(db, payload.bucket_id, payload.key, payload.file_id)
    if superseded:
        logger.info("Upload %s superseded %d older record(s)", payload.file_id, superseded)
    return UploadResponse(
        message="File uploaded successfully",
        file_id=payload.file_id,
        file_name=payload.file_name,
        file_size=written,
        bucket_id=payload.bucket_id,
        saved_path=payload.file_path,
    )


@router.post("/download-url", response_model=SignedUrlResponse)
async def create_download_url(
    body: DownloadUrlRequest,
    client: Client = Depends(get_current_client),
    broker: TokenBroker = Depends(get_token_broker),
    db: AsyncSession = Depends(get_db),
):
    issued = await broker.issue_download(db, client, body.file_id)
    return _signed_url_response(issued)


@router.get("/download")
async def download_file(
    token: str = "",
    broker: TokenBroker = Depends(get_token_broker),
    storage: StorageBackend = Depends(get_storage_backend),
):
    if not token:
        raise ValidationError("Missing download token")
    payload = await broker.redeem_download(token)
    path = storage.absolute_path(payload.file_path)
    if not path.is_file():
        raise NotFoundError("File not found")
    return FileResponse(path, media_type=payload.mimetype, filename=payload.file_name)


@router.delete("", response_model=DeleteFilesResponse)
async def delete_files(
    body: DeleteFilesRequest,
    client: Client = Depends(get_current_client),
    coordinator: DeletionCoordinator = Depends(get_deletion_coordinator),
    db: AsyncSession = Depends(get_db),
):
    """Delete by explicit ids, or everything under a path in one bucket. Never both."""
    by_ids = bool(body.file_ids)
    by_path = body.path is not None
    if by_ids and by_path:
        raise ValidationError("file_ids and path cannot be used together")
    if by_path and not body.bucket_id:
        raise ValidationError("bucket_id is required when path is provided")
    if by_ids:
        result = await coordinator.delete_by_ids(db, client.client_id, body.file_ids)
    elif by_path:
        result = await coordinator.delete_by_path(db, client.client_id, body.bucket_id, body.path)
    else:
        raise ValidationError("Either file_ids or (bucket_id and path) is required")
    return DeleteFilesResponse(deleted=result.deleted, missing=result.missing, failed=result.failed)
