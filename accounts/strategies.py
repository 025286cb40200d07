"""
accounts/strategies.py -- AuthLane strategies backed by AccountStore.

build_config(settings) wraps build_registry() into the AuthLaneConfig used by the app and
refuses serialize_user settings that would leak password or token hashes
into the session cookie.

build_registry() returns a StrategyRegistry with:

  auth       username/password from the form; "remember" checkbox issues a
             remember-me token cookie and stores its hash
  remember   resolves the remember-me cookie to an active account
  forget     clears the token hash at logout
  roles      default role strategy: arg is a role name or a list of them
  "admin"    the account's role is "admin"
  "rank"     the account's rank equals arg (1 when no arg is given)

The session credential only carries the account id (the default
serialize_user), so role strategies re-read the account from the store.
A disabled or deleted account fails every role check immediately.

The store is reached through ctx.request.app.state.account_store, set by
the application lifespan.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from typing import Any

from accounts.models import Account
from accounts.store import AccountStore
from accounts.tokens import authenticate_account, generate_remember_token, hash_remember_token
from authlane import DEFAULT_ROLE, AuthContext, AuthLaneConfig, StrategyRegistry

logger = logging.getLogger("authlane.accounts")

_TRUTHY = {"1", "true", "on", "yes"}

# Never copied into the (signed, readable) session cookie.
SECRET_FIELDS = frozenset({"hashed_password", "remember_hash"})


def _store(ctx: AuthContext) -> AccountStore:
    return ctx.request.app.state.account_store


def _account(ctx: AuthContext) -> Account | None:
    """Load the live account behind the request's credential."""
    if ctx.user is None:
        return None
    account_id = ctx.user["id"]
    if account_id is None:
        return None
    account = _store(ctx).get_by_id(int(account_id))
    if account is None or not account.is_active:
        return None
    return account


# ---------------------------------------------------------------------------
# Login lifecycle
# ---------------------------------------------------------------------------


def authenticate(ctx: AuthContext) -> Account | bool:
    store = _store(ctx)
    username = str(ctx.params.get("username", ""))
    password = str(ctx.params.get("password", ""))
    account = authenticate_account(store, username, password)
    if account is None:
        return False

    store.update_last_login(account.id)
    if str(ctx.params.get("remember", "")).lower() in _TRUTHY:
        token = generate_remember_token()
        store.set_remember_hash(account.id, hash_remember_token(token))
        ctx.cookies.set(ctx.config.remember_cookie, token)
    return account


def remember(ctx: AuthContext, token: str) -> Account | bool:
    account = _store(ctx).get_by_remember_hash(hash_remember_token(token))
    if account is None or not account.is_active:
        return False
    _store(ctx).update_last_login(account.id)
    return account


def forget(ctx: AuthContext, token: str) -> None:
    if not _store(ctx).forget_remember_hash(hash_remember_token(token)):
        logger.info("Remember-me token at logout was already invalid")


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


def has_role(ctx: AuthContext, roles: Any = None) -> bool:
    account = _account(ctx)
    if account is None:
        return False
    if roles is None:
        return True
    if isinstance(roles, str):
        roles = [roles]
    return account.role in roles


def is_admin(ctx: AuthContext, _arg: Any = None) -> bool:
    account = _account(ctx)
    return account is not None and account.role == "admin"


def has_rank(ctx: AuthContext, rank: Any = None) -> bool:
    account = _account(ctx)
    return account is not None and account.rank == (1 if rank is None else int(rank))


def build_registry() -> StrategyRegistry:
    registry = StrategyRegistry()
    registry.set_auth_strategy(authenticate)
    registry.set_remember_strategy(remember)
    registry.set_forget_strategy(forget)
    registry.set_role_strategy(has_role, DEFAULT_ROLE)
    registry.set_role_strategy(is_admin, "admin")
    registry.set_role_strategy(has_rank, "rank")
    return registry


def build_config(settings: Any) -> AuthLaneConfig:
    """Return the AuthLaneConfig for this backend from Settings.

    Raises ValueError when serialize_user would put an Account's password
    or token hash into the session cookie: raw mode (an empty list) copies
    every field, and SECRET_FIELDS must never be listed explicitly.
    """
    config = AuthLaneConfig.from_settings(settings, build_registry())
    if not config.serialize_user:
        raise ValueError(
            "AUTHLANE_SERIALIZE_USER must list the Account fields to keep in the session; "
            "an empty list would copy the password hash into the session cookie."
        )
    leaked = SECRET_FIELDS.intersection(config.serialize_user)
    if leaked:
        raise ValueError(f"AUTHLANE_SERIALIZE_USER must not include {', '.join(sorted(leaked))}.")
    return config
