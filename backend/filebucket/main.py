"""FastAPI app: token cache lifecycle, security headers, error handlers, routers."""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from filebucket.api.buckets import router as buckets_router
from filebucket.api.clients import router as clients_router
from filebucket.api.files import router as files_router
from filebucket.api.public import router as public_router
from filebucket.core.config import get_settings
from filebucket.core.deps import require_metrics_access
from filebucket.core.errors import ServiceError, service_error_handler, unhandled_error_handler
from filebucket.core.metrics import get_metrics
from filebucket.core.request_logging import RequestLoggingMiddleware
from filebucket.db.session import engine
from filebucket.services.token_cache import create_token_cache

settings = get_settings()
if settings.log_json:
    for h in logging.getLogger("filebucket.request").handlers[:]:
        logging.getLogger("filebucket.request").removeHandler(h)
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger("filebucket.request").addHandler(h)
    logging.getLogger("filebucket.request").setLevel(logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.token_cache = create_token_cache()
    logger.info("Token cache backend: %s", settings.cache_backend)
    try:
        yield
    finally:
        await app.state.token_cache.close()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.include_router(clients_router)
app.include_router(buckets_router)
app.include_router(files_router)
# Catch-all /files/{bucket_name}/{file_path} must come after the fixed /files routes
app.include_router(public_router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/healthz")
async def healthz():
    """Liveness: no auth, no DB."""
    return {"status": "ok"}


@app.get("/readyz")
async def readyz():
    """Readiness: light DB check."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except (SQLAlchemyError, OSError):
        logger.warning("Readiness check failed: database unreachable")
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "detail": "database unreachable"},
        )


@app.get("/metrics", response_class=Response)
async def metrics(_: None = Depends(require_metrics_access)):
    """Prometheus metrics. Guarded by the admin bearer token, or METRICS_SECRET + X-Metrics-Secret header."""
    body, content_type = get_metrics()
    return Response(content=body, media_type=content_type)
