"""
authlane/engine.py -- AuthLane, the per-request authorization engine.

The engine keeps no state of its own. Every call re-derives the verdict
from the context's session and cookie stores:

    Unauthenticated --(session holds credential)--> AuthenticatedViaSession
    Unauthenticated --(remember cookie accepted)--> AuthenticatedViaRemember
    AuthenticatedVia* --(role strategy)--> Authorized | Denied
    login():  Unauthenticated -> AuthenticatedViaCredentials, or redirect (303)
    logout(): any state -> Unauthenticated (session destroyed, cookie deleted)

A successful remember-me check is an implicit login: the credential is
written into the session as a side effect of is_authorized().

Role requests are either a bare role name or a single-entry mapping of
role name -> argument:
    lane.is_authorized(ctx, "admin")
    lane.is_authorized(ctx, {"admin": 2})
Only one role is checked per call. A mapping or list naming several
roles is passed through without a role check (and logged) rather than
ANDed; a one-item list checks that role. Unknown role names always deny,
unhashable ones included.

Layer rule: no imports from api/, web/, accounts/, or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence, Set
from typing import Any

from authlane.config import AuthLaneConfig
from authlane.context import AuthContext
from authlane.errors import AuthRedirect
from authlane.registry import DEFAULT_ROLE, StrategyRegistry

logger = logging.getLogger("authlane.engine")

# Sentinel for "no role check requested".
_NO_ROLE = object()


class AuthLane:
    """Authorization engine bound to one AuthLaneConfig.

    Usage:
        lane = AuthLane(AuthLaneConfig(registry=registry, serialize_user=["id", "role"]))
        ctx = AuthContext(config=lane.config, session=..., cookies=...)
        if lane.is_authorized(ctx, "admin"):
            ...
    """

    def __init__(self, config: AuthLaneConfig | None = None) -> None:
        self.config = config or AuthLaneConfig()

    @property
    def registry(self) -> StrategyRegistry:
        return self.config.registry

    def context(self, **kwargs: Any) -> AuthContext:
        """Build an AuthContext bound to this engine's config."""
        return AuthContext(config=self.config, **kwargs)

    def _strategies(self) -> StrategyRegistry:
        registry = self.config.registry
        registry.freeze()
        return registry

    # ------------------------------------------------------------------
    # Authorization checks
    # ------------------------------------------------------------------

    def is_authorized(self, ctx: AuthContext, role: Any = None) -> bool:
        """Return True if the request is logged in and passes the role check."""
        strategies = self._strategies()
        record = self._resolve_credential(ctx, strategies)
        if not record:
            return False

        name, arg = self._parse_role(role)
        if name is _NO_ROLE:
            if not self.config.check_default_role:
                return True
            name, arg = DEFAULT_ROLE, None

        strategy = strategies.role_strategy(name)
        if strategy is None:
            logger.warning("Unknown role strategy %r -- denying access", name)
            return False
        return bool(strategy(ctx, arg))

    def require_authorization(self, ctx: AuthContext, role: Any = None, failed_route: str | None = None) -> None:
        """Raise AuthRedirect (302) to the failed route unless is_authorized()."""
        if not self.is_authorized(ctx, role):
            raise AuthRedirect(failed_route or self.config.failed_route, 302)

    def _resolve_credential(self, ctx: AuthContext, strategies: StrategyRegistry) -> Any:
        """Return the session credential, logging in via remember-me on a miss."""
        record = ctx.session.get(self.config.session_key)
        if record is None:
            token = ctx.cookies.get(self.config.remember_cookie)
            if not token:
                return None
            user = strategies.remember_strategy(ctx, token)
            if not user:
                logger.info("Remember-me token rejected")
                return None
            record = self.config.make_record(user)
            ctx.session.set(self.config.session_key, record)
            logger.info("Logged in from remember-me token (%s=%r)", self.config.id_field, _ident(record, self.config))
        ctx.user = record
        return record

    @staticmethod
    def _parse_role(role: Any) -> tuple[Any, Any]:
        if role is None:
            return _NO_ROLE, None
        if isinstance(role, Mapping):
            if len(role) != 1:
                _skip_multi_role(role)
                return _NO_ROLE, None
            ((name, arg),) = role.items()
            return name, arg
        if isinstance(role, (Sequence, Set)) and not isinstance(role, (str, bytes)):
            # ["admin"] checks "admin"; ["admin", "rank"] is a multi-role request.
            if len(role) != 1:
                _skip_multi_role(role)
                return _NO_ROLE, None
            (name,) = role
            return name, None
        return role, None

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, ctx: AuthContext) -> Any:
        """Run the auth strategy and store the resulting credential.

        Raises AuthRedirect (303) to the failed route when the strategy
        refuses. Nothing is written to the session in that case.
        """
        user = self._strategies().auth_strategy(ctx)
        if not user:
            logger.warning("Login refused by auth strategy")
            raise AuthRedirect(self.config.failed_route, 303)

        record = self.config.make_record(user)
        ctx.session.set(self.config.session_key, record)
        ctx.user = record
        logger.info("Logged in (%s=%r)", self.config.id_field, _ident(record, self.config))
        return record

    def logout(self, ctx: AuthContext) -> None:
        """Forget the remember token, delete its cookie and destroy the whole session.

        The forget strategy runs whenever the cookie is present, even with
        an empty value. Remember-me login, by contrast, ignores empty tokens.
        """
        strategies = self._strategies()
        token = ctx.cookies.get(self.config.remember_cookie)
        if token is not None:
            strategies.forget_strategy(ctx, token)

        ctx.cookies.delete(self.config.remember_cookie)
        ctx.session.destroy()
        ctx.user = None
        logger.info("Logged out")

    def current_user(self, ctx: AuthContext) -> Any:
        """Return the stored credential as-is, None if there is none.

        No freshness check: call is_authorized() / require_authorization()
        first in the same request to make sure it is populated.
        """
        return ctx.session.get(self.config.session_key)


def _skip_multi_role(role: Any) -> None:
    if role:
        logger.warning(
            "Role request names %d roles (%s); only one role is checked per call -- skipping role check",
            len(role),
            ", ".join(map(repr, role)),
        )

def _ident(record: Any, config: AuthLaneConfig) -> Any:
    try:
        return record[config.id_field]
    except (KeyError, TypeError, AttributeError):
        return None
