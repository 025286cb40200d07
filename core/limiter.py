"""
core/limiter.py -- Shared slowapi rate limiter for the sign-in route.

Lives in core/ because both layers need it: api/main.py mounts
SlowAPIMiddleware and publishes the instance on app.state.limiter, while
web/routes.py decorates POST /signin. One shared instance means one shared
counter store; per-module instances would never trip their limits.

The limit string is read from Settings at request time, so tests and
deployments can change AUTHLANE_LOGIN_RATE_LIMIT without touching routes.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Return the configured limit for sign-in attempts, e.g. "10/minute"."""
    return get_settings().login_rate_limit
