"""Signed upload/download URLs over HTTP: issue, redeem once, size ceiling, supersede."""
import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.db.models import File
from filebucket.db.queries import mark_file_deleted
from helpers import token_from, upload, upload_request


@pytest.mark.asyncio
async def test_signed_url_requires_basic_auth(client: AsyncClient, bucket):
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "a.txt"))
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Basic"
    r = await client.post(
        "/files/signed-url", json=upload_request(bucket.id, "a.txt"), auth=("client_acme0001", "wrong")
    )
    assert r.status_code == 401
    assert r.json()["code"] == "authentication_error"


@pytest.mark.asyncio
async def test_upload_then_download_roundtrip(client: AsyncClient, auth, bucket, storage):
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "docs/hello.txt", 5), auth=auth)
    assert r.status_code == 200
    data = r.json()
    assert set(data) == {"file_id", "signed_url", "expires_at"}
    assert data["signed_url"].startswith("http://test/files/upload?token=")

    r = await client.put(f"/files/upload?token={token_from(data['signed_url'])}", content=b"hello")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["file_id"] == data["file_id"]
    assert body["file_size"] == 5
    assert body["bucket_id"] == bucket.id
    assert body["saved_path"] == "acme/photos/docs/hello.txt"
    assert (storage.root / "acme" / "photos" / "docs" / "hello.txt").read_bytes() == b"hello"

    r = await client.post("/files/download-url", json={"file_id": data["file_id"]}, auth=auth)
    assert r.status_code == 200
    download_url = r.json()["signed_url"]
    assert download_url.startswith("http://test/files/download?token=")

    r = await client.get(f"/files/download?token={token_from(download_url)}")
    assert r.status_code == 200
    assert r.content == b"hello"
    assert r.headers["content-type"].startswith("text/plain")
    assert 'attachment; filename="hello.txt"' in r.headers["content-disposition"]

    # One-time: the same URL cannot be used again
    r = await client.get(f"/files/download?token={token_from(download_url)}")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_upload_token_second_use_rejected(client: AsyncClient, auth, bucket):
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "a.txt", 3), auth=auth)
    token = token_from(r.json()["signed_url"])
    r = await client.post(f"/files/upload?token={token}", content=b"abc")
    assert r.status_code == 200
    r = await client.post(f"/files/upload?token={token}", content=b"abc")
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired upload token"


@pytest.mark.asyncio
async def test_oversized_upload_rejected_without_write(client: AsyncClient, auth, bucket, storage):
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "big.bin", 4), auth=auth)
    token = token_from(r.json()["signed_url"])
    r = await client.put(f"/files/upload?token={token}", content=b"12345")
    assert r.status_code == 400
    assert r.json()["detail"] == "File size exceeds allowed limit"
    assert not (storage.root / "acme" / "photos" / "big.bin").exists()
    # Token survives a rejected attempt
    r = await client.put(f"/files/upload?token={token}", content=b"123")
    assert r.status_code == 200
    assert r.json()["file_size"] == 3


@pytest.mark.asyncio
async def test_upload_missing_token_or_body(client: AsyncClient, auth, bucket):
    r = await client.put("/files/upload", content=b"abc")
    assert r.status_code == 400
    r = await client.put(f"/files/upload?token={'0' * 64}", content=b"abc")
    assert r.status_code == 401
    # An unknown token is reported before the missing body
    r = await client.put(f"/files/upload?token={'0' * 64}", content=b"")
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired upload token"
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "empty.txt", 3), auth=auth)
    r = await client.put(f"/files/upload?token={token_from(r.json()['signed_url'])}", content=b"")
    assert r.status_code == 400
    assert r.json()["detail"] == "No file content provided"


@pytest.mark.asyncio
async def test_signed_url_validation_errors(client: AsyncClient, auth, bucket):
    r = await client.post("/files/signed-url", json={}, auth=auth)
    assert r.status_code == 400
    assert r.json()["detail"] == "bucket_id is required and must be a positive integer"
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "../secret.txt"), auth=auth)
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "a.txt", 0), auth=auth)
    assert r.json()["detail"] == "file_size must be greater than 0"


@pytest.mark.asyncio
async def test_signed_url_for_foreign_bucket_forbidden(client: AsyncClient, other_auth, bucket):
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "a.txt"), auth=other_auth)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_signed_url_for_archived_bucket_conflicts(client: AsyncClient, auth, bucket, token_cache):
    r = await client.post(f"/buckets/{bucket.id}/archive", auth=auth)
    assert r.status_code == 200
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "a.txt"), auth=auth)
    assert r.status_code == 409
    assert len(token_cache) == 0


@pytest.mark.asyncio
async def test_reupload_same_key_supersedes_older_record(client: AsyncClient, auth, bucket, db: AsyncSession):
    first = await upload(client, auth, bucket.id, "notes/todo.txt", b"v1")
    second = await upload(client, auth, bucket.id, "notes/todo.txt", b"v2-longer")
    rows = (await db.execute(select(File).where(File.key == "notes/todo.txt"))).scalars().all()
    live = [f for f in rows if f.deleted_at is None]
    assert [f.id for f in live] == [second["file_id"]]
    assert any(f.id == first["file_id"] and f.deleted_at is not None for f in rows)
    assert live[0].file_size == len(b"v2-longer")


@pytest.mark.asyncio
async def test_interleaved_uploads_latest_completion_wins(client: AsyncClient, auth, bucket, storage, db: AsyncSession):
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "k.txt", 1), auth=auth)
    first_id, first_token = r.json()["file_id"], token_from(r.json()["signed_url"])
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "k.txt", 1), auth=auth)
    second_id, second_token = r.json()["file_id"], token_from(r.json()["signed_url"])

    r = await client.put(f"/files/upload?token={second_token}", content=b"B")
    assert r.status_code == 200
    # The first record is still waiting for its upload and stays live
    assert (await db.get(File, first_id)).deleted_at is None

    r = await client.put(f"/files/upload?token={first_token}", content=b"A")
    assert r.status_code == 200
    assert (await db.get(File, first_id)).deleted_at is None
    assert (await db.get(File, second_id)).deleted_at is not None
    assert (storage.root / "acme" / "photos" / "k.txt").read_bytes() == b"A"

    r = await client.get(f"/buckets/{bucket.id}/files", auth=auth)
    assert [f["id"] for f in r.json()["files"]] == [first_id]
    r = await client.post("/files/download-url", json={"file_id": first_id}, auth=auth)
    r = await client.get(f"/files/download?token={token_from(r.json()['signed_url'])}")
    assert r.content == b"A"


@pytest.mark.asyncio
async def test_upload_for_tombstoned_record_is_gone(client: AsyncClient, auth, bucket, storage, db: AsyncSession):
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "late.txt", 4), auth=auth)
    file_id, token = r.json()["file_id"], token_from(r.json()["signed_url"])
    await mark_file_deleted(db, file_id)
    r = await client.put(f"/files/upload?token={token}", content=b"late")
    assert r.status_code == 410
    assert not (storage.root / "acme" / "photos" / "late.txt").exists()


@pytest.mark.asyncio
async def test_download_url_for_pending_record_is_gone(client: AsyncClient, auth, bucket):
    await upload(client, auth, bucket.id, "shared.txt", b"done")
    r = await client.post("/files/signed-url", json=upload_request(bucket.id, "shared.txt", 4), auth=auth)
    pending_id = r.json()["file_id"]
    # Bytes exist at the path, but they belong to the completed upload
    r = await client.post("/files/download-url", json={"file_id": pending_id}, auth=auth)
    assert r.status_code == 410
    assert r.json()["detail"] == "File has not been uploaded"


@pytest.mark.asyncio
async def test_download_url_errors(client: AsyncClient, auth, other_auth, bucket, storage):
    r = await client.post("/files/download-url", json={}, auth=auth)
    assert r.status_code == 400
    assert r.json()["detail"] == "file_id is required"
    r = await client.post("/files/download-url", json={"file_id": "missing"}, auth=auth)
    assert r.status_code == 404

    uploaded = await upload(client, auth, bucket.id, "x.txt", b"x")
    r = await client.post("/files/download-url", json={"file_id": uploaded["file_id"]}, auth=other_auth)
    assert r.status_code == 403

    (storage.root / "acme" / "photos" / "x.txt").unlink()
    r = await client.post("/files/download-url", json={"file_id": uploaded["file_id"]}, auth=auth)
    assert r.status_code == 410


@pytest.mark.asyncio
async def test_download_file_removed_after_issuance(client: AsyncClient, auth, bucket, storage):
    uploaded = await upload(client, auth, bucket.id, "y.txt", b"y")
    r = await client.post("/files/download-url", json={"file_id": uploaded["file_id"]}, auth=auth)
    (storage.root / "acme" / "photos" / "y.txt").unlink()
    r = await client.get(f"/files/download?token={token_from(r.json()['signed_url'])}")
    assert r.status_code == 404
