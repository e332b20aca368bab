"""FastAPI dependencies: DB, Basic-auth client, admin bearer, metrics guard, token broker."""
from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBasic, HTTPBasicCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.core.config import get_settings
from filebucket.core.errors import AuthenticationError
from filebucket.core.security import verify_admin_token, verify_secret
from filebucket.db import Client, get_db
from filebucket.db.queries import get_client_by_client_id
from filebucket.services.deletion import DeletionCoordinator
from filebucket.services.storage import StorageBackend, get_storage
from filebucket.services.token_cache import TokenCache
from filebucket.services.tokens import TokenBroker

_basic = HTTPBasic(auto_error=False)
_bearer = HTTPBearer(auto_error=False)

INVALID_CREDENTIALS = "Invalid client credentials"


async def get_current_client(
    request: Request,
    credentials: HTTPBasicCredentials | None = Depends(_basic),
    db: AsyncSession = Depends(get_db),
) -> Client:
    """Client from HTTP Basic (client_id:client_secret); 401 with a Basic challenge otherwise."""
    challenge = {"WWW-Authenticate": "Basic"}
    if credentials is None or not credentials.username or not credentials.password:
        raise AuthenticationError("Authentication required", headers=challenge)
    client = await get_client_by_client_id(db, credentials.username)
    if client is None or not verify_secret(credentials.password, client.client_secret_hash):
        raise AuthenticationError(INVALID_CREDENTIALS, headers=challenge)
    request.state.client_id = client.client_id
    return client


def _is_admin(credentials: HTTPAuthorizationCredentials | None) -> bool:
    return credentials is not None and verify_admin_token(credentials.credentials)


def require_admin(credentials: HTTPAuthorizationCredentials | None = Depends(_bearer)) -> None:
    """Admin bearer token for client management."""
    if not _is_admin(credentials):
        raise AuthenticationError("Admin authentication required", headers={"WWW-Authenticate": "Bearer"})


def require_metrics_access(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    x_metrics_secret: str | None = Header(None, alias="X-Metrics-Secret"),
) -> None:
    """Allow /metrics if: admin (when metrics_require_admin), or valid X-Metrics-Secret, or no guard (local)."""
    s = get_settings()
    if s.metrics_require_admin:
        if not _is_admin(credentials):
            raise AuthenticationError("Metrics require admin authentication")
        return
    if s.metrics_secret:
        if x_metrics_secret != s.metrics_secret:
            raise AuthenticationError("Invalid or missing X-Metrics-Secret")
        return
    # No guard (e.g. local dev with metrics_require_admin=False and no secret)
    return


def get_token_cache(request: Request) -> TokenCache:
    return request.app.state.token_cache


def get_storage_backend() -> StorageBackend:
    return get_storage()


def get_base_url(request: Request) -> str:
    configured = get_settings().public_base_url
    return configured if configured else str(request.base_url)


def get_token_broker(
    cache: TokenCache = Depends(get_token_cache),
    storage: StorageBackend = Depends(get_storage_backend),
    base_url: str = Depends(get_base_url),
) -> TokenBroker:
    return TokenBroker(cache, storage, get_settings().token_ttl_seconds, base_url)


def get_deletion_coordinator(
    storage: StorageBackend = Depends(get_storage_backend),
) -> DeletionCoordinator:
    return DeletionCoordinator(storage)
