"""Bucket management: naming, policies, per-client scoping, archive monotonicity."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_and_get_bucket(client: AsyncClient, auth, api_client):
    r = await client.post(
        "/buckets",
        json={
            "name": "media-1",
            "public_paths": ["images/*"],
            "cors_policy": [{"AllowedOrigins": ["https://app.example.com"], "AllowedMethods": ["GET"]}],
        },
        auth=auth,
    )
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["name"] == "media-1"
    assert data["client_id"] == api_client.client_id
    assert data["archived"] is False
    assert data["public_paths"] == ["images/*"]
    assert data["cors_policy"][0]["AllowedHeaders"] == []

    r = await client.get(f"/buckets/{data['id']}", auth=auth)
    assert r.status_code == 200
    assert r.json()["id"] == data["id"]
    r = await client.get("/buckets", auth=auth)
    assert [b["name"] for b in r.json()] == ["media-1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["", "-bad", "bad-", "has space", "under_score", "dots.no", "x" * 64])
async def test_invalid_bucket_names(client: AsyncClient, auth, name):
    r = await client.post("/buckets", json={"name": name}, auth=auth)
    assert r.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["a", "a1", "my-bucket-2"])
async def test_valid_bucket_names(client: AsyncClient, auth, name):
    r = await client.post("/buckets", json={"name": name}, auth=auth)
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_duplicate_name_per_client_conflicts(client: AsyncClient, auth, other_auth, bucket):
    r = await client.post("/buckets", json={"name": "photos"}, auth=auth)
    assert r.status_code == 409
    # Another client may reuse the name
    r = await client.post("/buckets", json={"name": "photos"}, auth=other_auth)
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_invalid_policies_rejected(client: AsyncClient, auth):
    r = await client.post("/buckets", json={"name": "b1", "cors_policy": [{"AllowedOrigins": "*"}]}, auth=auth)
    assert r.status_code == 400
    r = await client.post("/buckets", json={"name": "b1", "cors_policy": [{"Origins": ["*"]}]}, auth=auth)
    assert r.status_code == 400
    r = await client.post("/buckets", json={"name": "b1", "public_paths": [1, 2]}, auth=auth)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_foreign_bucket_is_forbidden(client: AsyncClient, other_auth, bucket):
    r = await client.get(f"/buckets/{bucket.id}", auth=other_auth)
    assert r.status_code == 403
    r = await client.put(f"/buckets/{bucket.id}", json={"public_paths": ["*"]}, auth=other_auth)
    assert r.status_code == 403
    r = await client.post(f"/buckets/{bucket.id}/archive", auth=other_auth)
    assert r.status_code == 403
    r = await client.get("/buckets", auth=other_auth)
    assert r.json() == []


@pytest.mark.asyncio
async def test_update_policies(client: AsyncClient, auth, bucket):
    r = await client.put(f"/buckets/{bucket.id}", json={"public_paths": ["*.png"]}, auth=auth)
    assert r.status_code == 200
    data = r.json()
    assert data["public_paths"] == ["*.png"]
    # Untouched field is preserved
    assert data["cors_policy"][0]["AllowedOrigins"] == ["https://*.example.com"]


@pytest.mark.asyncio
async def test_archive_is_monotonic(client: AsyncClient, auth, bucket):
    r = await client.post(f"/buckets/{bucket.id}/archive", auth=auth)
    assert r.status_code == 200
    assert r.json()["archived"] is True
    r = await client.post(f"/buckets/{bucket.id}/archive", auth=auth)
    assert r.status_code == 409
    assert r.json()["detail"] == "Bucket is already archived"
    r = await client.put(f"/buckets/{bucket.id}", json={"public_paths": []}, auth=auth)
    assert r.status_code == 409
    assert r.json()["detail"] == "Cannot update an archived bucket"
    r = await client.get(f"/buckets/{bucket.id}", auth=auth)
    assert r.json()["archived"] is True


@pytest.mark.asyncio
async def test_missing_bucket_is_404(client: AsyncClient, auth):
    r = await client.get("/buckets/424242", auth=auth)
    assert r.status_code == 404
    assert r.json() == {"detail": "Bucket not found", "code": "not_found"}
