"""
accounts/models.py -- Domain dataclass for the example account backend.

Pattern: Data class (pure data container, zero logic). The store does the
work; strategies hand Account instances to the engine, which serializes
only the configured fields (just "id" by default) into the session.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A user that can sign in to the demo application.

    role drives the "admin" and default role strategies; rank drives the
    parameterized "rank" strategy (rank 1 is the default requirement).

    remember_hash is HMAC-SHA256 of the current remember-me token, None
    when the account has no active remember-me login. Only one remembered
    device per account: signing in with "remember me" again rotates it.
    """

    username: str
    role: str = "viewer"  # "admin", "analyst", "viewer"
    rank: int = 1
    id: int | None = None
    hashed_password: str | None = None
    remember_hash: str | None = None
    created_at: str | None = None
    last_login: str | None = None
    is_active: bool = True
