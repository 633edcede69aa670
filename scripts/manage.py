#!/usr/bin/env python3
"""Database maintenance for Wildlog.

Usage:
    DATABASE_URL=postgresql://localhost:5432/wildlog python scripts/manage.py migrate
    python scripts/manage.py seed      # sample accounts + sightings (dev only)
    python scripts/manage.py clear     # delete every account and sighting

Environment Variables:
    DATABASE_URL: PostgreSQL connection string
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _open_store(migrate: bool = False):
    # Import here to avoid loading config before env vars are set
    from wildlog.config import get_settings
    from wildlog.storage.postgres import PostgresStore

    return PostgresStore(get_settings().database_url, migrate=migrate)


def cmd_migrate(args: argparse.Namespace) -> int:
    store = _open_store(migrate=True)
    store.close()
    print("Schema is up to date")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    from wildlog.service.auth import hash_password
    from wildlog.storage.seed import SEED_EMAILS, SEED_PASSWORD, seed_sample_data

    store = _open_store()
    try:
        result = seed_sample_data(store, hash_password)
    finally:
        store.close()
    print(
        f"Seeded {result.accounts_created} accounts and {result.sightings_created} sightings"
    )
    print(f"  Sign in as {', '.join(SEED_EMAILS)} with password {SEED_PASSWORD}")
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    from wildlog.storage.seed import clear_data

    if not args.yes:
        print("Refusing to delete all data without --yes")
        return 1
    store = _open_store()
    try:
        clear_data(store)
    finally:
        store.close()
    print("All accounts and sightings deleted")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Wildlog database maintenance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("migrate", help="Apply pending schema migrations").set_defaults(func=cmd_migrate)
    sub.add_parser("seed", help="Insert sample data").set_defaults(func=cmd_seed)
    clear = sub.add_parser("clear", help="Delete all accounts and sightings")
    clear.add_argument("--yes", action="store_true", help="Confirm deletion")
    clear.set_defaults(func=cmd_clear)

    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except Exception as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
