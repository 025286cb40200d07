"""
api/main.py -- FastAPI application entry point for the AuthLane demo.

Builds one AuthLane engine from Settings plus the account-backed strategy
registry, installs it on the app, and exposes a small JSON surface. The
HTML sign-in flow lives in web/routes.py and is joined in by asgi.py.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests        -- one log line per request with latency
  2. SessionMiddleware   -- signed-cookie session (installed by authlane)
  3. AuthLaneMiddleware  -- per-request AuthContext, session/cookie write-back
  4. SlowAPIMiddleware   -- enforces per-route rate limits from core.limiter

Lifespan opens the AccountStore on startup and closes it on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.concurrency import run_in_threadpool

from accounts.store import DEFAULT_DB_URL, AccountStore
from accounts.strategies import build_config
from api.models import ErrorDetail, ErrorResponse, HealthResponse, SessionResponse
from authlane import AuthLane
from authlane.integration import RequestAuth, get_auth, install
from core.config import get_settings
from core.limiter import limiter

VERSION = "0.3.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authlane.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the account store for the lifetime of the server."""
    logger.info("AuthLane demo starting up")
    app.state.account_store = AccountStore(_settings.db_url or DEFAULT_DB_URL)
    if not app.state.account_store.has_accounts():
        logger.warning("No accounts yet -- create one with: python main.py create-user <name>")

    yield

    app.state.account_store.close()
    logger.info("AuthLane demo shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation + AuthLane
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AuthLane demo",
    description="Pluggable session authentication with remember-me and named role strategies.",
    version=VERSION,
    lifespan=lifespan,
)

lane = AuthLane(build_config(_settings))

app.add_middleware(SlowAPIMiddleware)
# Session + AuthLane middleware, AuthRedirect handler, app.state.authlane.
install(app, lane, _settings)

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
# Exception handlers
#
# Every JSON error uses the ErrorResponse envelope. AuthRedirect is not an
# error here: authlane.integration.install() turns it into a redirect.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    envelope = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=envelope.model_dump())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 for too many sign-in attempts from one address."""
    logger.warning("Rate limit hit on %s from %s", request.url.path, request.client.host if request.client else "?")
    response = _error_response(429, "rate_limited", "Too many sign-in attempts.", str(exc.detail))
    response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60)))
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected errors, including exceptions raised inside strategies.

    The engine never translates collaborator errors (e.g. a database failure
    in the remember strategy); they end up here. The traceback goes to the
    log only, the client gets a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version. No authentication."""
    return HealthResponse(version=VERSION)


def _session_state(auth: RequestAuth) -> SessionResponse:
    if not auth.is_authorized():
        return SessionResponse(authorized=False)
    user = auth.current_user()
    roles = sorted(str(name) for name in auth.lane.registry.role_strategies if auth.is_authorized(name))
    return SessionResponse(authorized=True, user=user.to_dict(), roles=roles)


@app.get("/api/v1/session", response_model=SessionResponse, tags=["Auth"])
async def session_state(auth: RequestAuth = Depends(get_auth)) -> SessionResponse:
    """Report whether the caller is authorized and which roles they pass.

    Never redirects: unauthenticated callers get authorized=false. A valid
    remember-me cookie logs the caller in as a side effect, like any check.
    """
    return await run_in_threadpool(_session_state, auth)
