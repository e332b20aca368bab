"""Prometheus metrics: requests by route/status, latency, token issue/redeem, deletions, public reads."""
import re

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total requests",
    ["method", "path", "status_class"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
TOKENS_ISSUED_TOTAL = Counter(
    "capability_tokens_issued_total",
    "Capability tokens issued",
    ["kind"],  # upload | download
)
TOKENS_REDEEMED_TOTAL = Counter(
    "capability_tokens_redeemed_total",
    "Capability token redemption attempts",
    ["kind", "result"],  # success | invalid | too_large
)
FILES_DELETED_TOTAL = Counter(
    "files_deleted_total",
    "Per-file delete outcomes",
    ["outcome"],  # deleted | missing | failed
)
PUBLIC_READS_TOTAL = Counter(
    "public_file_reads_total",
    "Public file reads",
    ["result"],  # served | forbidden | not_found
)

_BUCKET_PATH = re.compile(r"^/buckets/[^/]+")
_CLIENT_PATH = re.compile(r"^/clients/[^/]+$")
_FILE_ROUTES = ("/files/signed-url", "/files/upload", "/files/download-url", "/files/download", "/files")


def _status_class(status: int) -> str:
    if status < 200:
        return "1xx"
    if status < 300:
        return "2xx"
    if status < 400:
        return "3xx"
    if status < 500:
        return "4xx"
    return "5xx"


def normalize_path(path: str) -> str:
    """Collapse ids and object keys (e.g. /buckets/12/files -> /buckets/{id}/files) to bound cardinality."""
    path = path or "/"
    if path.startswith("/buckets/"):
        return _BUCKET_PATH.sub("/buckets/{id}", path)
    if _CLIENT_PATH.match(path):
        return "/clients/{id}"
    if path.startswith("/files/") and path not in _FILE_ROUTES:
        return "/files/{bucket_name}/{file_path}"
    return path


def record_request(method: str, path: str, status_code: int, latency_seconds: float) -> None:
    path = normalize_path(path)
    sc = _status_class(status_code)
    REQUEST_COUNT.labels(method=method, path=path, status_class=sc).inc()
    REQUEST_LATENCY.labels(method=method, path=path).observe(latency_seconds)


def record_token_issued(kind: str) -> None:
    TOKENS_ISSUED_TOTAL.labels(kind=kind).inc()


def record_token_redeemed(kind: str, result: str) -> None:
    TOKENS_REDEEMED_TOTAL.labels(kind=kind, result=result).inc()


def record_delete_outcomes(deleted: int, missing: int, failed: int) -> None:
    FILES_DELETED_TOTAL.labels(outcome="deleted").inc(deleted)
    FILES_DELETED_TOTAL.labels(outcome="missing").inc(missing)
    FILES_DELETED_TOTAL.labels(outcome="failed").inc(failed)


def record_public_read(result: str) -> None:
    PUBLIC_READS_TOTAL.labels(result=result).inc()


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
