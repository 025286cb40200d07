"""
authlane/registry.py -- The Strategy Registry.

Four kinds of pluggable decision functions, each taking the request
context explicitly:

  auth      (ctx)        -> user | falsy   log a user in (reads form params, may set cookies)
  role      (ctx, arg)   -> bool           check a named role, optionally parameterized
  remember  (ctx, token) -> user | falsy   log a user in from the remember-me cookie
  forget    (ctx, token) -> None           invalidate the remember-me token at logout

Unset slots fall back to safe defaults: auth and remember refuse, forget
does nothing, and the default role strategy permits everyone. An
unconfigured deployment therefore fails closed on authentication but open
on authorization of an already-authenticated session.

The registry is configured once at startup. The engine freezes it on its
first request-time call; later set_* calls raise RegistryFrozenError.

Layer rule: no imports from api/, web/, accounts/, or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from authlane.errors import RegistryFrozenError

if TYPE_CHECKING:
    from authlane.context import AuthContext

logger = logging.getLogger("authlane.registry")

DEFAULT_ROLE = "default"

AuthStrategy = Callable[["AuthContext"], Any]
RoleStrategy = Callable[["AuthContext", Any], bool]
RememberStrategy = Callable[["AuthContext", Any], Any]
ForgetStrategy = Callable[["AuthContext", Any], Any]


def refuse_auth(ctx: AuthContext) -> bool:
    return False


def permit_role(ctx: AuthContext, arg: Any = None) -> bool:
    return True


def refuse_remember(ctx: AuthContext, token: Any) -> bool:
    return False


def forget_nothing(ctx: AuthContext, token: Any) -> bool:
    return False


class StrategyRegistry:
    """Holds the four strategy slots for one AuthLane deployment.

    Usage:
        registry = StrategyRegistry()

        @registry.set_auth_strategy
        def auth(ctx):
            return store.authenticate(ctx.params["username"], ctx.params["password"]) or False

        @registry.role("admin")
        def admin(ctx, _arg):
            return ctx.user["role"] == "admin"
    """

    def __init__(self) -> None:
        self.auth_strategy: AuthStrategy = refuse_auth
        self.role_strategies: dict[Any, RoleStrategy] = {DEFAULT_ROLE: permit_role}
        self.remember_strategy: RememberStrategy = refuse_remember
        self.forget_strategy: ForgetStrategy = forget_nothing
        self._frozen = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Lock the registry; idempotent."""
        if not self._frozen:
            self._frozen = True
            logger.debug("Strategy registry frozen (roles: %s)", sorted(map(str, self.role_strategies)))

    def _check_mutable(self, slot: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"cannot replace the {slot} strategy after request handling started")

    # ------------------------------------------------------------------
    # Setters -- each returns the stored function so they double as decorators
    # ------------------------------------------------------------------

    def set_auth_strategy(self, fn: AuthStrategy) -> AuthStrategy:
        self._check_mutable("auth")
        self.auth_strategy = fn
        return fn

    def set_role_strategy(self, fn: RoleStrategy, name: Any = DEFAULT_ROLE) -> RoleStrategy:
        """Insert or replace the role strategy registered under name."""
        self._check_mutable(f"role {name!r}")
        self.role_strategies[name] = fn
        return fn

    def set_remember_strategy(self, fn: RememberStrategy) -> RememberStrategy:
        self._check_mutable("remember")
        self.remember_strategy = fn
        return fn

    def set_forget_strategy(self, fn: ForgetStrategy) -> ForgetStrategy:
        self._check_mutable("forget")
        self.forget_strategy = fn
        return fn

    def role(self, name: Any = DEFAULT_ROLE) -> Callable[[RoleStrategy], RoleStrategy]:
        """Decorator form of set_role_strategy for named roles."""

        def decorator(fn: RoleStrategy) -> RoleStrategy:
            return self.set_role_strategy(fn, name)

        return decorator

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def role_strategy(self, name: Any) -> RoleStrategy | None:
        """Return the role strategy registered under name, None if unknown."""
        try:
            return self.role_strategies.get(name)
        except TypeError:
            # Unhashable names can never be registered.
            return None
