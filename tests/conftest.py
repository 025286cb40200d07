"""
tests/conftest.py -- Shared test fixtures for AuthLane.

This module provides:
  - lane_factory: builds throwaway AuthLane engines over in-memory stores
  - account_store: module-scoped in-memory AccountStore with seeded accounts
  - client: TestClient (follow_redirects=False) over the real ASGI app

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

AUTHLANE_DEBUG must be set before any core/accounts import so get_settings()
auto-generates the secret key instead of raising ValueError. The sign-in rate
limit is raised so the suite never trips it.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/ import -- get_settings() is cached on first call.
os.environ.setdefault("AUTHLANE_DEBUG", "true")
os.environ.setdefault("AUTHLANE_LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from accounts.models import Account
from accounts.store import AccountStore
from accounts.tokens import hash_password
from asgi import app
from authlane import AuthContext, AuthLane, AuthLaneConfig, MemoryCookies, MemorySession

PASSWORD = "correct horse battery"

# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def lane_factory():
    """Return a function building (lane, ctx) pairs over in-memory stores.

    Keyword arguments go to AuthLaneConfig; session / cookies may be given
    as dicts to pre-seed the stores.
    """

    def _make(session: dict | None = None, cookies: dict | None = None, **config) -> tuple[AuthLane, AuthContext]:
        lane = AuthLane(AuthLaneConfig(**config))
        ctx = lane.context(session=MemorySession(session), cookies=MemoryCookies(cookies))
        return lane, ctx

    return _make


# ---------------------------------------------------------------------------
# Application fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AccountStore):
    """Return a lifespan that wires the test store into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = store
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def account_store() -> Generator[AccountStore, None, None]:
    """In-memory AccountStore with three active accounts and one disabled one.

      ada   admin    rank 1
      bob   analyst  rank 2
      cy    viewer   rank 1
      dee   viewer   rank 1  (disabled)
    """
    store = AccountStore(db_url="sqlite:///file:test_accounts?mode=memory&cache=shared&uri=true")
    hashed = hash_password(PASSWORD)
    store.create_account(Account(username="ada", role="admin", rank=1, hashed_password=hashed))
    store.create_account(Account(username="bob", role="analyst", rank=2, hashed_password=hashed))
    store.create_account(Account(username="cy", role="viewer", rank=1, hashed_password=hashed))
    store.create_account(Account(username="dee", role="viewer", rank=1, hashed_password=hashed, is_active=False))
    yield store
    store.close()


@pytest.fixture
def client(account_store: AccountStore) -> Generator[TestClient, None, None]:
    """Fresh TestClient (empty cookie jar) per test.

    follow_redirects=False is essential: tests assert on redirect Location
    headers, which are invisible once the client follows them.
    """
    app.router.lifespan_context = _patch_lifespan(account_store)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as test_client:
        yield test_client


@pytest.fixture
def sign_in(client: TestClient):
    """Return a helper that POSTs the sign-in form and returns the response."""

    def _sign_in(username: str, remember: bool = False, password: str = PASSWORD, next_url: str = ""):
        data = {"username": username, "password": password}
        if remember:
            data["remember"] = "1"
        url = f"/signin?next={next_url}" if next_url else "/signin"
        return client.post(url, data=data)

    return _sign_in
