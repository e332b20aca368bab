"""Request helpers shared by the API tests."""
from httpx import AsyncClient


def upload_request(bucket_id: int, key: str, size: int = 5, **overrides) -> dict:
    body = {
        "bucket_id": bucket_id,
        "key": key,
        "file_name": key.rsplit("/", 1)[-1],
        "file_size": size,
        "mimetype": "text/plain",
        "owner_entity_type": "user",
        "owner_entity_id": "u-1",
    }
    body.update(overrides)
    return body


def token_from(signed_url: str) -> str:
    return signed_url.split("token=", 1)[1]


async def upload(client: AsyncClient, auth, bucket_id: int, key: str, content: bytes) -> dict:
    """Issue an upload URL for key and redeem it with content. Returns the upload response."""
    r = await client.post("/files/signed-url", json=upload_request(bucket_id, key, len(content)), auth=auth)
    assert r.status_code == 200, r.text
    r = await client.put(f"/files/upload?token={token_from(r.json()['signed_url'])}", content=content)
    assert r.status_code == 200, r.text
    return r.json()
