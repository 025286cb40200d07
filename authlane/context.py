"""
authlane/context.py -- Request context handed to every strategy.

Strategies never reach for a global request object. Everything they may
touch is on AuthContext:

  ctx.session   request-scoped key/value store (SessionStore protocol)
  ctx.cookies   small client-persisted key/value store (CookieStore protocol)
  ctx.params    query parameters and form fields of the request
  ctx.request   the underlying Starlette Request, None outside HTTP
  ctx.config    the AuthLaneConfig of the engine handling the request
  ctx.user      the credential resolved by the engine for this request

MemorySession / MemoryCookies implement the two store protocols over plain
dicts for scripts, background jobs and unit tests. The Starlette-backed
versions live in authlane/integration.py.

Layer rule: no imports from api/, web/, accounts/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from authlane.config import AuthLaneConfig


class SessionStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def destroy(self) -> None: ...


class CookieStore(Protocol):
    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str) -> None: ...

    def delete(self, name: str) -> None: ...


class MemorySession:
    """SessionStore over a plain dict. destroy() drops every key."""

    def __init__(self, data: dict | None = None) -> None:
        self.data: dict = data if data is not None else {}

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def destroy(self) -> None:
        self.data.clear()


class MemoryCookies:
    """CookieStore over a plain dict."""

    def __init__(self, data: dict | None = None) -> None:
        self.data: dict = data if data is not None else {}

    def get(self, name: str) -> str | None:
        return self.data.get(name)

    def set(self, name: str, value: str) -> None:
        self.data[name] = value

    def delete(self, name: str) -> None:
        self.data.pop(name, None)


@dataclass
class AuthContext:
    """Everything a strategy can see about the current request."""

    config: AuthLaneConfig
    session: SessionStore = field(default_factory=MemorySession)
    cookies: CookieStore = field(default_factory=MemoryCookies)
    request: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    # Populated by the engine once a credential is resolved.
    user: Any = None
