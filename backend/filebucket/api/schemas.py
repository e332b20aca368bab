"""Pydantic request/response schemas.

Request fields default to empty values so that missing fields reach the service
layer, which reports them in a fixed order with a 400 naming the field.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


def _config_forbid(**kwargs):
    return ConfigDict(extra="forbid", **kwargs)


# ----- Clients -----
class ClientCreateRequest(BaseModel):
    model_config = _config_forbid()
    name: str = ""


class ClientOut(BaseModel):
    model_config = _config_forbid(from_attributes=True)
    id: int
    name: str
    client_id: str
    created_at: datetime


class ClientCreatedResponse(ClientOut):
    client_secret: str  # returned once, never stored in plain text


# ----- Buckets -----
class BucketCreateRequest(BaseModel):
    model_config = _config_forbid()
    name: str = ""
    cors_policy: list | None = None
    public_paths: list | None = None


class BucketUpdateRequest(BaseModel):
    model_config = _config_forbid()
    cors_policy: list | None = None
    public_paths: list | None = None


class BucketOut(BaseModel):
    model_config = _config_forbid(from_attributes=True)
    id: int
    name: str
    client_id: str
    cors_policy: list[dict]
    public_paths: list[str]
    archived: bool
    created_at: datetime
    updated_at: datetime


class FileSummary(BaseModel):
    model_config = _config_forbid(from_attributes=True)
    id: str
    file_name: str
    file_size: int
    mimetype: str
    key: str
    created_at: datetime


class BucketListing(BaseModel):
    model_config = _config_forbid()
    bucket_id: int
    path: str
    files: list[FileSummary]
    folders: list[str]


# ----- Files -----
class UploadUrlRequest(BaseModel):
    model_config = _config_forbid()
    bucket_id: int = 0
    key: str = ""
    file_name: str = ""
    file_size: int = 0
    mimetype: str = ""
    owner_entity_type: str = ""
    owner_entity_id: str = ""


class DownloadUrlRequest(BaseModel):
    model_config = _config_forbid()
    file_id: str = ""


class SignedUrlResponse(BaseModel):
    model_config = _config_forbid()
    file_id: str
    signed_url: str
    expires_at: datetime


class UploadResponse(BaseModel):
    model_config = _config_forbid()
    message: str
    file_id: str
    file_name: str
    file_size: int
    bucket_id: int
    saved_path: str


class DeleteFilesRequest(BaseModel):
    model_config = _config_forbid()
    file_ids: list[str] | None = None
    bucket_id: int | None = None
    path: str | None = None


class DeleteFilesResponse(BaseModel):
    model_config = _config_forbid()
    deleted: list[str]
    missing: list[str]
    failed: list[str]
