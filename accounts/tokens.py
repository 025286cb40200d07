"""
accounts/tokens.py -- Password hashing and remember-me token utilities.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       enables timing equalization in authenticate_account() so response
       time does not reveal whether a username exists.

  Remember tokens: secrets.token_urlsafe(32) gives 256 bits of entropy. The
       cookie carries the raw token; the store keeps only
       HMAC-SHA256(SECRET_KEY, token), so a leaked database cannot be
       replayed as cookies and lookup stays O(1).

  SECRET_KEY: sourced from core.config.get_settings(), the same key that
       signs the session cookie.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import TYPE_CHECKING

import bcrypt

from core.config import get_settings

if TYPE_CHECKING:
    from accounts.models import Account
    from accounts.store import AccountStore

logger = logging.getLogger("authlane.accounts")

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Malformed hashes and over-long inputs raise ValueError inside bcrypt;
    both mean "does not match".
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("authlane_timing_dummy")


def authenticate_account(store: AccountStore, username: str, password: str) -> Account | None:
    """Check a username/password pair with timing equalization.

    Always runs bcrypt whether or not the account exists:
    - Unknown username: bcrypt runs against _DUMMY_HASH
    - Wrong password: bcrypt runs against the real hash

    Returns the Account on success, None on any failure.
    """
    account = store.get_by_username(username)
    if account is None or account.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, account.hashed_password):
        return None
    if not account.is_active:
        logger.info("Refusing login for disabled account %r", account.username)
        return None
    return account


# ---------------------------------------------------------------------------
# Remember-me tokens
# ---------------------------------------------------------------------------


def generate_remember_token() -> str:
    """Return a fresh URL-safe remember-me token for the cookie."""
    return secrets.token_urlsafe(32)


def hash_remember_token(token: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, token) as a hex string."""
    return hmac.new(
        get_settings().secret_key.encode(),
        token.encode(),
        hashlib.sha256,
    ).hexdigest()
