"""Buckets: create, list, get, update policies, archive, folder listing. Scoped to the Basic-auth client."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.api.schemas import (
    BucketCreateRequest,
    BucketListing,
    BucketOut,
    BucketUpdateRequest,
    FileSummary,
)
from filebucket.core.deps import get_current_client
from filebucket.core.errors import AuthorizationError, ConflictError, NotFoundError
from filebucket.db import Bucket, Client, get_db
from filebucket.db.models import utcnow
from filebucket.db.queries import get_active_bucket_for_client, get_bucket_by_id
from filebucket.services.listing import list_namespace
from filebucket.services.validation import (
    validate_bucket_name,
    validate_cors_policy,
    validate_public_paths,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/buckets", tags=["buckets"])


async def _get_own_bucket(db: AsyncSession, bucket_id: int, client: Client) -> Bucket:
    bucket = await get_bucket_by_id(db, bucket_id)
    if bucket is None:
        raise NotFoundError("Bucket not found")
    if bucket.client_id != client.client_id:
        raise AuthorizationError("Access denied: bucket does not belong to your account")
    return bucket


@router.post("", response_model=BucketOut, status_code=status.HTTP_201_CREATED)
async def create_bucket(
    body: BucketCreateRequest,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    name = validate_bucket_name(body.name)
    cors_policy = validate_cors_policy(body.cors_policy)
    public_paths = validate_public_paths(body.public_paths)
    existing = await db.execute(
        select(Bucket.id).where(Bucket.name == name, Bucket.client_id == client.client_id)
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("A bucket with this name already exists")
    bucket = Bucket(
        name=name,
        client_id=client.client_id,
        cors_policy=cors_policy,
        public_paths=public_paths,
        archived=False,
    )
    db.add(bucket)
    await db.flush()
    await db.refresh(bucket)
    logger.info("Created bucket %s (id=%s) for client_id=%s", name, bucket.id, client.client_id)
    return BucketOut.model_validate(bucket)


@router.get("", response_model=list[BucketOut])
async def list_buckets(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Bucket).where(Bucket.client_id == client.client_id).order_by(Bucket.id.asc())
    )
    return [BucketOut.model_validate(b) for b in result.scalars().all()]


@router.get("/{bucket_id}", response_model=BucketOut)
async def get_bucket(
    bucket_id: int,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    return BucketOut.model_validate(await _get_own_bucket(db, bucket_id, client))


@router.put("/{bucket_id}", response_model=BucketOut)
async def update_bucket(
    bucket_id: int,
    body: BucketUpdateRequest,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    """Replace cors_policy and/or public_paths. Fields left out are unchanged."""
    bucket = await get_active_bucket_for_client(db, bucket_id, client.client_id, "update")
    if body.cors_policy is not None:
        bucket.cors_policy = validate_cors_policy(body.cors_policy)
    if body.public_paths is not None:
        bucket.public_paths = validate_public_paths(body.public_paths)
    bucket.updated_at = utcnow()
    await db.flush()
    await db.refresh(bucket)
    return BucketOut.model_validate(bucket)


@router.post("/{bucket_id}/archive", response_model=BucketOut)
async def archive_bucket(
    bucket_id: int,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    """Archiving is one-way: there is no unarchive."""
    bucket = await _get_own_bucket(db, bucket_id, client)
    if bucket.archived:
        raise ConflictError("Bucket is already archived")
    bucket.archived = True
    bucket.updated_at = utcnow()
    await db.flush()
    await db.refresh(bucket)
    logger.info("Archived bucket id=%s for client_id=%s", bucket.id, client.client_id)
    return BucketOut.model_validate(bucket)


@router.get("/{bucket_id}/files", response_model=BucketListing)
async def list_bucket_files(
    bucket_id: int,
    path: str = "",
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    """One level of the key hierarchy under path: direct files plus immediate subfolders."""
    await get_active_bucket_for_client(db, bucket_id, client.client_id, "list")
    listing = await list_namespace(db, bucket_id, path)
    return BucketListing(
        bucket_id=bucket_id,
        path=listing.path,
        files=[FileSummary.model_validate(f) for f in listing.files],
        folders=listing.folders,
    )
