"""
api/main.py -- FastAPI host application for the user administration extension.

Mounts the /useradd and /userdel routes (api/routes/v1/users.py) under
EXTENSION_MOUNT_POINT and supplies what the routes expect from their host:
an AuthManager on app.state.auth_manager and a UserStore on
app.state.user_store for principal resolution.

Run with:  uvicorn asgi:app --reload

Middleware: TrustedHostMiddleware rejects requests with unexpected Host
headers. Rate limits are enforced inside the routes (api/limiter.py), not by
middleware, so they never apply before the superuser check.

Lifespan opens the auth store, seeds the superuser on first start and
closes the store on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse, Status
from api.routes.v1.users import router as users_router
from auth.manager import StoreAuthManager
from auth.models import SUPERUSER
from auth.store import UserStore
from core.config import get_settings

__version__ = "1.0.0"

settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("useradmin.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the auth store for the server lifetime and seed the superuser.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("User admin extension starting up")
    app.state.user_store = UserStore(settings.auth_db_url)
    auth_manager = StoreAuthManager(app.state.user_store)
    app.state.auth_manager = auth_manager
    if auth_manager.ensure_user(SUPERUSER, settings.initial_password):
        logger.warning(
            "Created superuser %r with the initial password. It must be changed on first login.",
            SUPERUSER,
        )
    logger.info("Auth store initialized (mount point %r)", settings.extension_mount_point or "/")

    yield

    app.state.user_store.close()
    logger.info("User admin extension shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="User Admin Extension",
    description="Privileged user creation and deletion for the database server's HTTP API.",
    version=__version__,
    lifespan=lifespan,
    # The admin routes are excluded from the schema; publishing docs would
    # advertise what the 404 policy hides.
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix=settings.extension_mount_point, tags=["User administration"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Error bodies are ErrorResponse ({"code", "message"}). Plain HTTP errors
# (no structured detail) get an empty body so a hidden route's 404 is
# byte-for-byte the router's 404 for an unknown path.
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 InvalidFormat when path or query parameters fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            code=Status.REQUEST_INVALID_FORMAT,
            message=f"Request validation failed: {exc.errors()}",
        ).model_dump(mode="json"),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Render HTTP exceptions from routes and from the router itself.

    Registered for Starlette's base class so the router's own 404/405 and
    the routes' fastapi.HTTPException go through the same code path. Routes
    that want a body raise with detail=ErrorResponse(...).model_dump().
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=exc.headers)
    return Response(status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback is logged, never written to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            code=Status.UNKNOWN_ERROR,
            message="An unexpected error occurred.",
        ).model_dump(mode="json"),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Not rate limited -- load balancer health checks must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version and auth store reachability."""
    database = "ok"
    try:
        request.app.state.user_store.ping()
    except SQLAlchemyError:
        logger.warning("Health check could not reach the auth store")
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
