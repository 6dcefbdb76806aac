"""
api/main.py -- FastAPI application entry point for APIREST.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost; Starlette wraps the last-added
middleware around the earlier ones):
  1. log_requests          -- logs method, path, status, latency and client
  2. SlowAPIMiddleware     -- enforces rate limits from api.limiter
  3. CORSMiddleware        -- adds CORS headers for allowed browser origins
  4. TrustedHostMiddleware -- rejects requests with unexpected Host headers

Lifespan opens the user store on startup and disposes it on shutdown.

Every error response uses the same {"mensaje": "..."} envelope, whether it
comes from a domain rule, an HTTPException, request validation, the rate
limiter or an unexpected crash.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.users import router as users_router
from core.config import get_settings
from users.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidEmailFormatError,
    InvalidPasswordFormatError,
    NoChangesError,
    UserError,
    UserNotFoundError,
)
from users.service import UserService
from users.store import UserStore

VERSION = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("apirest.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the user store on startup and release it on shutdown."""
    logger.info("APIREST starting up")
    app.state.user_store = UserStore(db_url=_settings.database_url)
    app.state.user_service = UserService(app.state.user_store, password_pattern=_settings.password_pattern)
    logger.info("User store initialized")

    yield

    app.state.user_store.close()
    logger.info("APIREST shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="APIREST",
    description="User registration and JWT-authenticated account management.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


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

app.include_router(users_router, prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

_ERROR_STATUS: dict[type[UserError], int] = {
    EmailAlreadyRegisteredError: 400,
    InvalidEmailFormatError: 400,
    InvalidPasswordFormatError: 400,
    NoChangesError: 400,
    InvalidCredentialsError: 401,
    UserNotFoundError: 404,
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(mensaje=message).model_dump())


@app.exception_handler(UserError)
async def user_error_handler(request: Request, exc: UserError) -> JSONResponse:
    """Map a domain rule violation to its status code."""
    status_code = _ERROR_STATUS.get(type(exc), 400)
    resp = _error(status_code, str(exc))
    if status_code == 401:
        resp.headers["Cache-Control"] = "no-store"
    return resp


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "Demasiadas solicitudes")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed bodies and params with 400, naming the offending fields."""
    fields = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        fields.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return _error(400, "Solicitud inválida: " + "; ".join(fields))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap FastAPI/Starlette HTTP exceptions (401, 403, 404 route misses...) in the envelope."""
    resp = _error(exc.status_code, str(exc.detail))
    if getattr(exc, "headers", None):
        resp.headers.update(exc.headers)
    return resp


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "Error interno del servidor")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus a database reachability check. No auth, no rate limit."""
    try:
        database = "ok" if request.app.state.user_store.ping() else "error"
    except Exception:
        logger.exception("Health check database ping failed")
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
