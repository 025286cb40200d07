"""
authlane/errors.py -- Exception taxonomy for AuthLane.

A strategy refusing a login or a remember token is NOT an error: it is a
normal negative outcome and surfaces as False or as an AuthRedirect.
Exceptions raised by strategy code itself (database errors and the like)
are never caught here -- they propagate to the surrounding request layer.
"""

from __future__ import annotations


class AuthLaneError(Exception):
    """Base class for AuthLane programming and configuration errors."""


class RegistryFrozenError(AuthLaneError):
    """Raised when a strategy is replaced after request handling has started."""


class MissingMiddlewareError(AuthLaneError):
    """Raised when the FastAPI dependencies run without AuthLaneMiddleware installed."""


class AuthRedirect(Exception):
    """Signals that the current request must be redirected.

    Raised by AuthLane.require_authorization() (302) and AuthLane.login()
    (303). The web binding turns it into a RedirectResponse; non-HTTP
    callers catch it and read location / status_code.
    """

    def __init__(self, location: str, status_code: int = 302) -> None:
        super().__init__(f"redirect to {location} ({status_code})")
        self.location = location
        self.status_code = status_code
