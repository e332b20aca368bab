"""Health, readiness, metrics guard, request ids and log redaction."""
import pytest
from httpx import AsyncClient

from filebucket.core.logging_redaction import redact_for_log, token_hint
from filebucket.core.metrics import normalize_path


@pytest.mark.asyncio
async def test_health_and_ready(client: AsyncClient):
    for path in ("/health", "/healthz", "/readyz"):
        r = await client.get(path)
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_responses_carry_request_id_and_security_headers(client: AsyncClient):
    r = await client.get("/health")
    assert r.headers["x-request-id"]
    assert r.headers["x-content-type-options"] == "nosniff"
    assert r.headers["x-frame-options"] == "DENY"


@pytest.mark.asyncio
async def test_metrics_require_admin(client: AsyncClient, admin_headers):
    r = await client.get("/metrics")
    assert r.status_code == 401
    r = await client.get("/metrics", headers=admin_headers)
    assert r.status_code == 200
    assert "capability_tokens_issued_total" in r.text


def test_normalize_path_bounds_cardinality():
    assert normalize_path("/buckets/12/files") == "/buckets/{id}/files"
    assert normalize_path("/clients/7") == "/clients/{id}"
    assert normalize_path("/files/photos/a/b.png") == "/files/{bucket_name}/{file_path}"
    assert normalize_path("/files/download") == "/files/download"
    assert normalize_path("/files") == "/files"


def test_redact_for_log():
    token = "ab" * 32
    out = redact_for_log({
        "authorization": "Basic abc",
        "client_secret": "secret_x",
        "nested": {"url_token": "t", "value": token},
        "path": "/files/upload",
        "items": ["secret_y", "ok"],
    })
    assert out["authorization"] == "[REDACTED]"
    assert out["client_secret"] == "[REDACTED]"
    assert out["nested"] == {"url_token": "[REDACTED]", "value": "[REDACTED]"}
    assert out["path"] == "/files/upload"
    assert out["items"] == ["[REDACTED]", "ok"]


def test_token_hint_never_reveals_full_token():
    token = "0123456789abcdef" * 4
    assert token_hint(token) == "01234567..."
    assert token_hint("") == ""
