"""
tests/test_accounts.py -- Example account backend: AccountStore, tokens, CLI.

Covers:
  - AccountStore CRUD and remember-me hash bookkeeping
  - Password verification with timing equalization for unknown users
  - Remember tokens are stored as HMACs, never in the clear
  - build_config() refuses session fields that would leak secrets
  - main.py sub-commands against a throwaway SQLite file
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

import main
from accounts.models import Account
from accounts.store import AccountStore
from accounts.strategies import SECRET_FIELDS, build_config
from accounts.tokens import (
    authenticate_account,
    generate_remember_token,
    hash_password,
    hash_remember_token,
    verify_password,
)
from core.config import Settings


@pytest.fixture
def store(tmp_path):
    store = AccountStore(db_url=f"sqlite:///{tmp_path / 'accounts.db'}")
    yield store
    store.close()


class TestAccountStore:
    def test_create_and_lookup(self, store: AccountStore) -> None:
        account_id = store.create_account(Account(username="ada", role="admin", rank=3))
        by_name = store.get_by_username("ada")
        assert by_name.id == account_id
        assert by_name.role == "admin"
        assert by_name.rank == 3
        assert by_name.is_active is True
        assert store.get_by_id(account_id).username == "ada"
        assert store.has_accounts()

    def test_duplicate_username_rejected(self, store: AccountStore) -> None:
        store.create_account(Account(username="ada"))
        with pytest.raises(IntegrityError):
            store.create_account(Account(username="ada"))

    def test_missing_lookups_return_none(self, store: AccountStore) -> None:
        assert store.get_by_username("nobody") is None
        assert store.get_by_id(404) is None
        assert store.get_by_remember_hash("0" * 64) is None
        assert not store.has_accounts()

    def test_update_account(self, store: AccountStore) -> None:
        account_id = store.create_account(Account(username="ada"))
        assert store.update_account(account_id, is_active=False, rank=2)
        account = store.get_by_id(account_id)
        assert account.is_active is False
        assert account.rank == 2
        assert not store.update_account(404, rank=1)

    def test_remember_hash_lifecycle(self, store: AccountStore) -> None:
        account_id = store.create_account(Account(username="ada"))
        store.set_remember_hash(account_id, "a" * 64)
        assert store.get_by_remember_hash("a" * 64).id == account_id
        assert store.forget_remember_hash("a" * 64) is True
        assert store.forget_remember_hash("a" * 64) is False
        assert store.get_by_id(account_id).remember_hash is None

    def test_list_accounts_sorted(self, store: AccountStore) -> None:
        store.create_account(Account(username="cy"))
        store.create_account(Account(username="ada"))
        assert [a.username for a in store.list_accounts()] == ["ada", "cy"]

    def test_update_last_login(self, store: AccountStore) -> None:
        account_id = store.create_account(Account(username="ada"))
        store.update_last_login(account_id)
        assert store.get_by_id(account_id).last_login is not None


class TestTokens:
    def test_password_round_trip(self) -> None:
        hashed = hash_password("s3cret")
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_never_matches(self) -> None:
        assert verify_password("s3cret", "not-a-bcrypt-hash") is False

    def test_authenticate_account(self, store: AccountStore) -> None:
        store.create_account(Account(username="ada", hashed_password=hash_password("s3cret")))
        store.create_account(Account(username="dee", hashed_password=hash_password("s3cret"), is_active=False))
        assert authenticate_account(store, "ada", "s3cret").username == "ada"
        assert authenticate_account(store, "ada", "wrong") is None
        assert authenticate_account(store, "nobody", "s3cret") is None
        assert authenticate_account(store, "dee", "s3cret") is None

    def test_remember_tokens(self) -> None:
        token = generate_remember_token()
        assert token != generate_remember_token()
        digest = hash_remember_token(token)
        assert len(digest) == 64
        assert token not in digest
        assert digest == hash_remember_token(token)



class TestBuildConfig:
    def _settings(self, fields: list[str]) -> Settings:
        return Settings(_env_file=None, secret_key="k" * 32, serialize_user=fields)

    def test_default_fields_accepted(self) -> None:
        config = build_config(self._settings(["id", "role"]))
        assert config.serialize_user == ("id", "role")
        assert config.registry.role_strategy("admin") is not None

    def test_raw_mode_refused(self) -> None:
        with pytest.raises(ValueError, match="must list the Account fields"):
            build_config(self._settings([]))

    @pytest.mark.parametrize("secret", sorted(SECRET_FIELDS))
    def test_secret_fields_refused(self, secret) -> None:
        with pytest.raises(ValueError, match=secret):
            build_config(self._settings(["id", secret]))

class TestCli:
    @pytest.fixture(autouse=True)
    def _db(self, monkeypatch, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'cli.db'}"
        monkeypatch.setattr(main, "get_settings", lambda: SimpleNamespace(db_url=db_url))
        self.db_url = db_url

    def test_create_and_list(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": "pw")
        assert main.main(["create-user", "ada", "--role", "admin", "--rank", "2"]) == 0
        assert main.main(["create-user", "ada"]) == 1
        assert main.main(["list-users"]) == 0
        out = capsys.readouterr().out
        assert "Created account" in out
        assert "already exists" in out
        assert "admin" in out

    def test_mismatched_passwords(self, monkeypatch) -> None:
        answers = iter(["one", "two"])
        monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(answers))
        assert main.main(["create-user", "ada"]) == 1

    def test_disable_and_forget(self, monkeypatch) -> None:
        store = AccountStore(self.db_url)
        account_id = store.create_account(Account(username="ada"))
        store.set_remember_hash(account_id, "b" * 64)
        store.close()

        assert main.main(["forget", "ada"]) == 0
        assert main.main(["disable", "ada"]) == 0
        assert main.main(["disable", "nobody"]) == 1

        store = AccountStore(self.db_url)
        account = store.get_by_id(account_id)
        store.close()
        assert account.is_active is False
        assert account.remember_hash is None

    def test_no_command_prints_help(self, capsys) -> None:
        assert main.main([]) == 0
        assert "create-user" in capsys.readouterr().out
