"""Capability tokens for signed upload/download URLs.

A token is 32 random bytes (hex) mapping, in the TTL cache, to a typed payload
that carries everything the unauthenticated upload/download endpoint needs:
file id, owner, bucket and the physical path resolved at issuance. Tokens are
single use: redemption takes the payload out of the cache atomically, so two
concurrent redemptions cannot both transfer bytes. Expiry is left to the cache.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel
from pydantic import ValidationError as PayloadError
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    GoneError,
    NotFoundError,
    ValidationError,
)
from filebucket.core.logging_redaction import token_hint
from filebucket.core.metrics import record_token_issued, record_token_redeemed
from filebucket.core.security import generate_capability_token
from filebucket.db import queries
from filebucket.db.models import Client
from filebucket.services import paths
from filebucket.services.storage import StorageBackend
from filebucket.services.token_cache import TokenCache

logger = logging.getLogger(__name__)

UPLOAD_NAMESPACE = "upload:"
DOWNLOAD_NAMESPACE = "download:"


class UploadTokenPayload(BaseModel):
    file_id: str
    file_name: str
    file_size: int  # ceiling declared at issuance
    mimetype: str
    client_id: str
    bucket_id: int
    key: str
    file_path: str  # <client name>/<bucket name>/<key>, relative to the storage root
    owner_entity_type: str
    owner_entity_id: str


class DownloadTokenPayload(BaseModel):
    file_id: str
    file_name: str
    mimetype: str
    client_id: str
    bucket_id: int
    file_path: str


@dataclass(frozen=True)
class IssuedToken:
    file_id: str
    token: str
    signed_url: str
    expires_at: datetime


def _require_text(value: str | None, field: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")


def validate_upload_request(
    bucket_id: int | None,
    key: str | None,
    file_name: str | None,
    file_size: int | None,
    mimetype: str | None,
    owner_entity_type: str | None,
    owner_entity_id: str | None,
) -> None:
    """Checked in a fixed order so the first offending field is always the one reported."""
    if not isinstance(bucket_id, int) or isinstance(bucket_id, bool) or bucket_id <= 0:
        raise ValidationError("bucket_id is required and must be a positive integer")
    _require_text(key, "key")
    paths.validate_key(key)
    _require_text(file_name, "file_name")
    if not isinstance(file_size, int) or isinstance(file_size, bool) or file_size <= 0:
        raise ValidationError("file_size must be greater than 0")
    _require_text(mimetype, "mimetype")
    _require_text(owner_entity_type, "owner_entity_type")
    _require_text(owner_entity_id, "owner_entity_id")


class TokenBroker:
    """Issues and redeems upload/download capability tokens."""

    def __init__(
        self,
        cache: TokenCache,
        storage: StorageBackend,
        ttl_seconds: int,
        base_url: str,
    ) -> None:
        self._cache = cache
        self._storage = storage
        self._ttl = ttl_seconds
        self._base_url = base_url.rstrip("/")

    async def _store(self, namespace: str, endpoint: str, file_id: str, payload: BaseModel) -> IssuedToken:
        token = generate_capability_token()
        await self._cache.set(namespace + token, payload.model_dump_json(), self._ttl)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self._ttl)
        return IssuedToken(
            file_id=file_id,
            token=token,
            signed_url=f"{self._base_url}{endpoint}?token={token}",
            expires_at=expires_at,
        )

    async def issue_upload(
        self,
        db: AsyncSession,
        client: Client,
        *,
        bucket_id: int,
        key: str,
        file_name: str,
        file_size: int,
        mimetype: str,
        owner_entity_type: str,
        owner_entity_id: str,
    ) -> IssuedToken:
        """Create the file record, then a token allowing one upload of at most file_size bytes to key."""
        validate_upload_request(
            bucket_id, key, file_name, file_size, mimetype, owner_entity_type, owner_entity_id
        )
        bucket = await queries.get_active_bucket_for_client(db, bucket_id, client.client_id, "upload to")
        file_path = paths.resolve(client.name, bucket.name, key)
        # The row exists even if the upload never happens; scripts/reap_orphans.py cleans those up
        file = await queries.insert_file(
            db,
            file_name=file_name,
            file_size=file_size,
            mimetype=mimetype,
            client_id=client.client_id,
            bucket_id=bucket.id,
            key=key,
            owner_entity_type=owner_entity_type,
            owner_entity_id=owner_entity_id,
        )
        payload = UploadTokenPayload(
            file_id=file.id,
            file_name=file_name,
            file_size=file_size,
            mimetype=mimetype,
            client_id=client.client_id,
            bucket_id=bucket.id,
            key=key,
            file_path=file_path,
            owner_entity_type=owner_entity_type,
            owner_entity_id=owner_entity_id,
        )
        issued = await self._store(UPLOAD_NAMESPACE, "/files/upload", file.id, payload)
        record_token_issued("upload")
        logger.info(
            "Issued upload token %s file_id=%s client_id=%s bucket_id=%s",
            token_hint(issued.token), file.id, client.client_id, bucket.id,
        )
        return issued

    async def issue_download(self, db: AsyncSession, client: Client, file_id: str) -> IssuedToken:
        """Token allowing one download of a live file owned by client whose content is on disk."""
        _require_text(file_id, "file_id")
        found = await queries.get_file_with_location(db, file_id)
        if found is None:
            raise NotFoundError("File not found")
        file, client_name, bucket = found
        if file.deleted_at is not None:
            raise GoneError("File has been deleted")
        if file.client_id != client.client_id:
            raise AuthorizationError("Access denied")
        if bucket.archived:
            raise ConflictError("Cannot download from an archived bucket")
        if file.uploaded_at is None:
            raise GoneError("File has not been uploaded")
        file_path = paths.resolve(client_name, bucket.name, file.key)
        if not file.key or not self._storage.exists(file_path):
            # Metadata without content counts as deleted
            logger.warning("File %s missing on disk at %s", file.id, file_path)
            raise GoneError("File has been deleted")
        payload = DownloadTokenPayload(
            file_id=file.id,
            file_name=file.file_name,
            mimetype=file.mimetype,
            client_id=client.client_id,
            bucket_id=file.bucket_id,
            file_path=file_path,
        )
        issued = await self._store(DOWNLOAD_NAMESPACE, "/files/download", file.id, payload)
        record_token_issued("download")
        logger.info(
            "Issued download token %s file_id=%s client_id=%s",
            token_hint(issued.token), file.id, client.client_id,
        )
        return issued

    @staticmethod
    def _decode(raw: str | None, model: type[BaseModel], kind: str) -> BaseModel:
        # Never-issued, expired, consumed and corrupt tokens all look the same to the caller
        if raw is None:
            record_token_redeemed(kind, "invalid")
            raise AuthenticationError(f"Invalid or expired {kind} token")
        try:
            return model.model_validate_json(raw)
        except PayloadError:
            record_token_redeemed(kind, "invalid")
            logger.warning("Undecodable %s token payload", kind)
            raise AuthenticationError(f"Invalid or expired {kind} token") from None

    async def peek_upload(self, token: str) -> UploadTokenPayload:
        """Read an upload payload without consuming it."""
        raw = await self._cache.get(UPLOAD_NAMESPACE + token)
        return self._decode(raw, UploadTokenPayload, "upload")

    @staticmethod
    def _check_size(token: str, payload: UploadTokenPayload, size: int) -> None:
        if size > payload.file_size:
            record_token_redeemed("upload", "too_large")
            logger.info(
                "Rejected upload %s: %d bytes exceeds %d",
                token_hint(token), size, payload.file_size,
            )
            raise ValidationError("File size exceeds allowed limit")

    async def check_upload_size(self, token: str, declared_size: int | None) -> None:
        """Early reject before any body is read: unknown token first, then a declared Content-Length."""
        payload = await self.peek_upload(token)
        if declared_size is not None:
            self._check_size(token, payload, declared_size)

    async def redeem_upload(self, token: str, received_size: int) -> UploadTokenPayload:
        """Consume an upload token for received_size bytes.

        An oversized attempt is rejected with ValidationError and leaves the token
        in place, so a retry with correctly sized content can still succeed.
        """
        self._check_size(token, await self.peek_upload(token), received_size)
        raw = await self._cache.take(UPLOAD_NAMESPACE + token)
        payload = self._decode(raw, UploadTokenPayload, "upload")
        record_token_redeemed("upload", "success")
        return payload

    async def redeem_download(self, token: str) -> DownloadTokenPayload:
        raw = await self._cache.take(DOWNLOAD_NAMESPACE + token)
        payload = self._decode(raw, DownloadTokenPayload, "download")
        record_token_redeemed("download", "success")
        return payload
