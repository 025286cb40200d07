"""
authlane/integration.py -- FastAPI / Starlette binding for the AuthLane engine.

Wiring (see install()):

    SessionMiddleware          signed-cookie session (request.session)
      AuthLaneMiddleware       builds AuthContext, flushes session, applies cookies
        routes                 Depends(get_auth) / Depends(protect("admin"))

AuthLaneMiddleware MUST sit inside SessionMiddleware: it reads
request.session, and its write-back of the credential has to happen before
SessionMiddleware serializes the session into the response cookie.
install() registers both in the right order.

Redirects: the engine raises AuthRedirect. install() registers an exception
handler that turns it into a RedirectResponse. Because exception handlers
run inside user middleware, cookies queued by strategies (e.g. a fresh
remember-me token) still reach the redirect response.

Route usage:
    @router.get("/account")
    def account(auth: RequestAuth = Depends(protect())):
        return {"user": auth.current_user().to_dict()}

    @router.post("/signin")
    def signin(auth: RequestAuth = Depends(get_auth)):
        auth.login()                      # raises AuthRedirect (303) on failure
        return RedirectResponse("/account", status_code=303)

Layer rule: no imports from api/, web/, accounts/, or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from authlane.context import AuthContext
from authlane.engine import AuthLane
from authlane.errors import AuthRedirect, MissingMiddlewareError
from authlane.records import dump_record

logger = logging.getLogger("authlane.web")

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


# ---------------------------------------------------------------------------
# Store adapters
# ---------------------------------------------------------------------------


def _session_dump(record: Any) -> dict:
    # datetimes, Decimals, UUIDs and nested models come back as their JSON forms.
    return jsonable_encoder(dump_record(record))


class StarletteSession:
    """SessionStore over Starlette's request.session.

    Starlette sessions are JSON documents, so the credential stored under
    record_key is kept as a JSON-encoded dump_record() dict and rebuilt
    with `load` on first read. Values without a JSON type come back in
    their encoded form: a datetime field reads as its ISO string on the
    next request. The rebuilt record is cached for the request and written
    back by flush(), so in-place edits to the current user persist.
    """

    def __init__(self, request: Request, record_key: str, load: Callable[[Any], Any]) -> None:
        self._session = request.session
        self._record_key = record_key
        self._load = load
        self._cache: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        if key in self._cache:
            return self._cache[key]
        value = self._session.get(key)
        if value is not None and key == self._record_key:
            value = self._load(value)
            self._cache[key] = value
        return value

    def set(self, key: str, value: Any) -> None:
        if key == self._record_key and value is not None:
            self._cache[key] = value
            self._session[key] = _session_dump(value)
        else:
            self._cache.pop(key, None)
            self._session[key] = value

    def destroy(self) -> None:
        self._cache.clear()
        self._session.clear()

    def flush(self) -> None:
        for key, value in self._cache.items():
            self._session[key] = _session_dump(value)


class StarletteCookies:
    """CookieStore reading request cookies and queueing writes for the response.

    Reads see this request's own pending writes first. apply() copies the
    queue onto the outgoing response:
      httponly=True   the token is never readable from JS
      samesite="lax"  not sent on cross-site POSTs
      secure          only over HTTPS when secure_cookies is on (production)
    """

    def __init__(self, request: Request, max_age: int, secure: bool = False, path: str = "/") -> None:
        self._incoming = request.cookies
        self._pending: dict[str, str | None] = {}
        self._max_age = max_age
        self._secure = secure
        self._path = path

    def get(self, name: str) -> str | None:
        if name in self._pending:
            return self._pending[name]
        return self._incoming.get(name)

    def set(self, name: str, value: str) -> None:
        self._pending[name] = str(value)

    def delete(self, name: str) -> None:
        self._pending[name] = None

    def apply(self, response: Response) -> None:
        for name, value in self._pending.items():
            if value is None:
                response.delete_cookie(name, path=self._path, secure=self._secure, httponly=True, samesite="lax")
            else:
                response.set_cookie(
                    name,
                    value=value,
                    max_age=self._max_age,
                    path=self._path,
                    secure=self._secure,
                    httponly=True,
                    samesite="lax",
                )


# ---------------------------------------------------------------------------
# Per-request facade
# ---------------------------------------------------------------------------


class RequestAuth:
    """The engine bound to one request's context."""

    def __init__(self, lane: AuthLane, context: AuthContext) -> None:
        self.lane = lane
        self.context = context

    def is_authorized(self, role: Any = None) -> bool:
        return self.lane.is_authorized(self.context, role)

    def protect(self, role: Any = None, failed_route: str | None = None) -> None:
        self.lane.require_authorization(self.context, role, failed_route)

    def login(self) -> Any:
        return self.lane.login(self.context)

    def logout(self) -> None:
        self.lane.logout(self.context)

    def current_user(self) -> Any:
        return self.lane.current_user(self.context)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class AuthLaneMiddleware(BaseHTTPMiddleware):
    """Attach a RequestAuth to request.state and persist its mutations."""

    def __init__(self, app, lane: AuthLane, remember_max_age: int, secure_cookies: bool = False) -> None:
        super().__init__(app)
        self.lane = lane
        self.remember_max_age = remember_max_age
        self.secure_cookies = secure_cookies

    async def dispatch(self, request: Request, call_next):
        if "session" not in request.scope:
            raise MissingMiddlewareError("AuthLaneMiddleware must be installed inside SessionMiddleware")

        config = self.lane.config
        session = StarletteSession(request, config.session_key, config.load_record)
        cookies = StarletteCookies(request, max_age=self.remember_max_age, secure=self.secure_cookies)
        context = self.lane.context(
            session=session,
            cookies=cookies,
            request=request,
            params=dict(request.query_params),
        )
        request.state.authlane = RequestAuth(self.lane, context)

        response = await call_next(request)

        session.flush()
        cookies.apply(response)
        return response


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def get_auth(request: Request) -> RequestAuth:
    """Resolve the request's RequestAuth, merging form fields into ctx.params.

    Form bodies are read here (async) so synchronous strategies can read
    ctx.params["username"] etc. without touching the request stream.
    """
    auth = getattr(request.state, "authlane", None)
    if auth is None:
        raise MissingMiddlewareError("AuthLaneMiddleware is not installed -- call authlane.integration.install(app, ...)")
    if request.headers.get("content-type", "").startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        auth.context.params.update(form.items())
    return auth


def protect(role: Any = None, failed_route: str | None = None) -> Callable:
    """Dependency factory: require authorization (and optionally a role).

    Resolves to the RequestAuth when allowed; otherwise AuthRedirect sends
    the client to failed_route (or the configured failed route). Strategies
    are synchronous and may hit a database, so the check runs in the
    threadpool.
    """

    async def dependency(auth: RequestAuth = Depends(get_auth)) -> RequestAuth:
        await run_in_threadpool(auth.protect, role, failed_route)
        return auth

    return dependency


# ---------------------------------------------------------------------------
# Exception handler + installation
# ---------------------------------------------------------------------------


async def auth_redirect_handler(request: Request, exc: AuthRedirect) -> RedirectResponse:
    """Turn AuthRedirect into a redirect response that is never cached."""
    logger.debug("Redirecting %s %s to %s (%d)", request.method, request.url.path, exc.location, exc.status_code)
    response = RedirectResponse(exc.location, status_code=exc.status_code)
    response.headers["Cache-Control"] = "no-store"
    return response


def install(app: FastAPI, lane: AuthLane, settings: Any) -> None:
    """Register AuthLane on a FastAPI app.

    `settings` needs secret_key, session_cookie, session_max_age,
    remember_max_age and secure_cookies (core.config.Settings has them).
    Must be called before the app starts serving.
    """
    app.add_middleware(
        AuthLaneMiddleware,
        lane=lane,
        remember_max_age=settings.remember_max_age,
        secure_cookies=settings.secure_cookies,
    )
    # Added after AuthLaneMiddleware, so it wraps it (outermost wins).
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.secure_cookies,
    )
    app.add_exception_handler(AuthRedirect, auth_redirect_handler)
    app.state.authlane = lane
