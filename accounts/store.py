"""
accounts/store.py -- SQLAlchemy Core persistence for the example account backend.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. Strategy and route code never touches SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.
  remember_hash is UNIQUE so a token can only ever resolve to one account.

DB path: accounts/authlane_accounts.db unless a db_url is given.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from accounts.models import Account

DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'authlane_accounts.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text),
    Column("role", String(30), nullable=False, server_default="viewer"),
    Column("rank", Integer, nullable=False, server_default="1"),
    Column("remember_hash", String(64), unique=True),  # HMAC-SHA256 hex, NULL = not remembered
    Column("created_at", String(32), nullable=False),
    Column("last_login", Text),
    Column("is_active", Integer, nullable=False, server_default="1"),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers never block on a login write."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore()
        store.create_account(Account(username="ada", role="admin", hashed_password=hash_password("secret")))
        account = store.get_by_username("ada")
        store.close()
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_accounts(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_accounts)).scalar()
        return (result or 0) > 0

    def get_by_username(self, username: str) -> Account | None:
        """Look up an account by exact username (case-sensitive)."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.username == username)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_remember_hash(self, remember_hash: str) -> Account | None:
        """Look up the account a remember-me token belongs to. O(1) via UNIQUE index."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.remember_hash == remember_hash)).fetchone()
        return _row_to_account(row) if row is not None else None

    def list_accounts(self) -> list[Account]:
        with self.engine.connect() as conn:
            rows = conn.execute(_accounts.select().order_by(_accounts.c.username)).fetchall()
        return [_row_to_account(r) for r in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> int:
        """Insert a new account and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    username=account.username,
                    hashed_password=account.hashed_password,
                    role=account.role,
                    rank=account.rank,
                    created_at=_now_iso(),
                    is_active=1 if account.is_active else 0,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_account(self, account_id: int, **fields) -> bool:
        """Update mutable fields (role, rank, is_active, hashed_password).

        Returns True if a row was updated, False if account_id was not found.
        """
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def set_remember_hash(self, account_id: int, remember_hash: str | None) -> None:
        """Store (or clear, with None) the remember-me token hash of an account."""
        with self.engine.connect() as conn:
            conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(remember_hash=remember_hash))
            conn.commit()

    def forget_remember_hash(self, remember_hash: str) -> bool:
        """Clear a remember-me token wherever it is stored. True if one was cleared."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.remember_hash == remember_hash).values(remember_hash=None)
            )
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, account_id: int) -> None:
        with self.engine.connect() as conn:
            conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(last_login=_now_iso()))
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        role=row.role,
        rank=row.rank,
        remember_hash=row.remember_hash,
        created_at=row.created_at,
        last_login=row.last_login,
        is_active=bool(row.is_active),
    )
