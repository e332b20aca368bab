"""Service errors. Raised by services and deps; rendered by the handlers registered in main."""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base for errors the API reports to the caller as-is."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, headers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers


class ValidationError(ServiceError):
    """Malformed or missing input. Message names the offending field."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(ServiceError):
    """Missing/invalid credentials, or an invalid, expired or consumed token."""

    status_code = 401
    code = "authentication_error"


class AuthorizationError(ServiceError):
    status_code = 403
    code = "authorization_error"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class ConflictError(ServiceError):
    """Entity exists but its state forbids the operation (e.g. archived bucket)."""

    status_code = 409
    code = "conflict"


class GoneError(ServiceError):
    """Metadata exists but the content is gone (soft-deleted or missing on disk)."""

    status_code = 410
    code = "gone"


async def service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ServiceError)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=exc.headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Opaque 500: store and filesystem failures never leak details."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": ServiceError.code},
    )
