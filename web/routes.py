"""
web/routes.py -- Jinja2 template routes for the AuthLane demo sign-in flow.

These routes share app.state with the API routes (same AccountStore, same
AuthLane engine) but return HTML instead of JSON. Pages are deliberately
bare: view rendering is not AuthLane's concern.

Routes:
  GET  /                    -- landing page, shows sign-in state (no redirect)
  GET  /signin              -- sign-in form (redirects to /account when signed in)
  POST /signin              -- AuthLane login(); 303 to ?next= or /account
  GET  /signout, POST       -- AuthLane logout(); 302 to /signin
  GET  /account             -- protected page
  GET  /staff               -- protected by the default role strategy (admin or analyst)
  GET  /admin               -- protected by the "admin" role strategy
  GET  /user/unauthorized   -- configured failed route
"""

import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from accounts.store import AccountStore
from authlane import DEFAULT_ROLE
from authlane.integration import RequestAuth, get_auth, protect
from core.limiter import limiter, login_rate_limit

logger = logging.getLogger("authlane.web.routes")


def _template_user(request: Request) -> Any:
    """Return the session credential for layout.html, None when signed out.

    Reads the stored credential only; it never runs a strategy, so pages
    that skip the authorization check never log anyone in.
    """
    auth = getattr(request.state, "authlane", None)
    return auth.current_user() if auth is not None else None


templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
templates.env.globals["current_user"] = _template_user
router = APIRouter()


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative ones ("//evil.example"),
    both of which would send the user off-site after signing in.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/account"


def _username(request: Request, auth: RequestAuth) -> str:
    user = auth.current_user()
    store: AccountStore = request.app.state.account_store
    account = store.get_by_id(int(user["id"])) if user is not None and user["id"] is not None else None
    return account.username if account is not None else "unknown"


def _page(request: Request, title: str, message: str, link: Optional[dict] = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "page.html",
        {"title": title, "message": message, "link": link},
        status_code=status_code,
    )


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request, auth: RequestAuth = Depends(get_auth)):
    if auth.is_authorized():
        return _page(
            request,
            "AuthLane",
            f"Signed in as {_username(request, auth)}.",
            link={"href": "/account", "text": "Account"},
        )
    return _page(request, "AuthLane", "Not signed in.", link={"href": "/signin", "text": "Sign in"})


@router.get("/signin", response_class=HTMLResponse)
def signin_form(request: Request, auth: RequestAuth = Depends(get_auth)):
    if auth.is_authorized():
        return RedirectResponse("/account", status_code=302)
    next_url = request.query_params.get("next")
    return templates.TemplateResponse(
        request,
        "signin.html",
        {"next_url": _safe_next(next_url) if next_url else None},
    )


@limiter.limit(login_rate_limit)  # must stay ABOVE @router to preserve FastAPI introspection
@router.post("/signin")
def signin(request: Request, auth: RequestAuth = Depends(get_auth)) -> RedirectResponse:
    """Run the auth strategy. A refused login raises AuthRedirect (303) to the failed route."""
    auth.login()
    resp = RedirectResponse(_safe_next(request.query_params.get("next")), status_code=303)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.api_route("/signout", methods=["GET", "POST"])
def signout(auth: RequestAuth = Depends(get_auth)) -> RedirectResponse:
    """Forget the remember-me token and destroy the whole session."""
    auth.logout()
    return RedirectResponse("/signin", status_code=302)


@router.get("/user/unauthorized", response_class=HTMLResponse)
def unauthorized(request: Request):
    return _page(
        request,
        "Unauthorized",
        "You are not allowed to see that page.",
        link={"href": "/signin", "text": "Sign in"},
        status_code=401,
    )


# ---------------------------------------------------------------------------
# Protected pages
# ---------------------------------------------------------------------------


@router.get("/account", response_class=HTMLResponse)
def account(request: Request, auth: RequestAuth = Depends(protect())):
    return _page(request, "Account", f"Welcome, {_username(request, auth)}.", link={"href": "/signout", "text": "Sign out"})


@router.get("/staff", response_class=HTMLResponse)
def staff(request: Request, auth: RequestAuth = Depends(protect({DEFAULT_ROLE: ["admin", "analyst"]}))):
    return _page(request, "Staff", f"Staff area for {_username(request, auth)}.")


@router.get("/admin", response_class=HTMLResponse)
def admin(request: Request, auth: RequestAuth = Depends(protect("admin", failed_route="/account"))):
    return _page(request, "Admin", f"Admin area for {_username(request, auth)}.")
