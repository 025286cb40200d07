#!/usr/bin/env python3
"""
AuthLane demo -- account management for the example user backend.

Usage:
  python main.py create-user ada --role admin
  python main.py create-user bob --role analyst --rank 2
  python main.py list-users
  python main.py disable ada
  python main.py forget ada

Passwords are prompted for (never passed on the command line).

Environment variables:
  AUTHLANE_DB_URL       Account database (default: accounts/authlane_accounts.db)
  AUTHLANE_SECRET_KEY   Session signing key, also keys the remember-token HMAC
"""

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from accounts.models import Account
from accounts.store import DEFAULT_DB_URL, AccountStore
from accounts.tokens import hash_password
from core.config import get_settings


def _create_user(store: AccountStore, args: argparse.Namespace) -> int:
    password = getpass.getpass(f"Password for {args.username}: ")
    if not password:
        print("  [!] Empty password, nothing created.")
        return 1
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1
    try:
        account_id = store.create_account(
            Account(username=args.username, role=args.role, rank=args.rank, hashed_password=hash_password(password))
        )
    except IntegrityError:
        print(f"  [!] Username '{args.username}' already exists.")
        return 1
    print(f"Created account #{account_id} '{args.username}' (role={args.role}, rank={args.rank}).")
    return 0


def _list_users(store: AccountStore, args: argparse.Namespace) -> int:
    accounts = store.list_accounts()
    if not accounts:
        print("No accounts.")
        return 0
    print(f"{'ID':>4}  {'USERNAME':<24} {'ROLE':<10} {'RANK':>4}  {'ACTIVE':<6} {'REMEMBERED':<10} LAST LOGIN")
    for a in accounts:
        print(
            f"{a.id:>4}  {a.username:<24} {a.role:<10} {a.rank:>4}  "
            f"{'yes' if a.is_active else 'no':<6} {'yes' if a.remember_hash else 'no':<10} {a.last_login or '-'}"
        )
    return 0


def _disable(store: AccountStore, args: argparse.Namespace) -> int:
    account = store.get_by_username(args.username)
    if account is None:
        print(f"  [!] No account named '{args.username}'.")
        return 1
    store.update_account(account.id, is_active=False)
    store.set_remember_hash(account.id, None)
    print(f"Disabled '{args.username}' and revoked its remember-me token.")
    return 0


def _forget(store: AccountStore, args: argparse.Namespace) -> int:
    account = store.get_by_username(args.username)
    if account is None:
        print(f"  [!] No account named '{args.username}'.")
        return 1
    store.set_remember_hash(account.id, None)
    print(f"Revoked the remember-me token of '{args.username}'.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="authlane",
        description="Manage accounts of the AuthLane demo application.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = sub.add_parser("create-user", help="Create an account (prompts for the password)")
    create.add_argument("username")
    create.add_argument("--role", choices=["admin", "analyst", "viewer"], default="viewer")
    create.add_argument("--rank", type=int, default=1, help="Rank checked by the 'rank' role strategy (default: 1)")
    create.set_defaults(handler=_create_user)

    listing = sub.add_parser("list-users", help="List all accounts")
    listing.set_defaults(handler=_list_users)

    disable = sub.add_parser("disable", help="Disable an account and revoke its remember-me token")
    disable.add_argument("username")
    disable.set_defaults(handler=_disable)

    forget = sub.add_parser("forget", help="Revoke an account's remember-me token")
    forget.add_argument("username")
    forget.set_defaults(handler=_forget)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    store = AccountStore(get_settings().db_url or DEFAULT_DB_URL)
    try:
        return args.handler(store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
