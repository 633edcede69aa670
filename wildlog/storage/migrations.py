"""Ordered schema migrations for the Postgres store.

Each migration runs once and is recorded in ``_migrations``; re-running
``run_migrations`` against an up-to-date database is a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from wildlog.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Migration:
    id: int
    name: str
    statements: tuple[str, ...]


MIGRATIONS: List[Migration] = [
    Migration(
        id=1,
        name="001_init",
        statements=(
            """
            CREATE TABLE IF NOT EXISTS account (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                password_hash TEXT NOT NULL,
                created_at BIGINT NOT NULL,
                last_login_at BIGINT,
                deleted_at BIGINT
            )
            """,
            # case-insensitive uniqueness among active accounts only
            """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_account_email_active
                ON account (lower(email)) WHERE deleted_at IS NULL
            """,
            "CREATE INDEX IF NOT EXISTS idx_account_created_at ON account (created_at)",
            """
            CREATE TABLE IF NOT EXISTS sighting (
                id TEXT PRIMARY KEY,
                seq BIGINT GENERATED ALWAYS AS IDENTITY,
                user_id TEXT NOT NULL REFERENCES account (id),
                animal_name TEXT NOT NULL,
                location TEXT NOT NULL,
                timestamp_sighted BIGINT NOT NULL,
                photo_url TEXT,
                created_at BIGINT NOT NULL,
                updated_at BIGINT NOT NULL,
                deleted_at BIGINT,
                CHECK (photo_url IS NULL OR photo_url LIKE 'data:image/%'),
                CHECK (photo_url IS NULL OR length(photo_url) <= 2900000)
            )
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_sighting_owner
                ON sighting (user_id, deleted_at, created_at DESC)
            """,
            "CREATE INDEX IF NOT EXISTS idx_sighting_created_at ON sighting (created_at DESC)",
        ),
    ),
]


def _ensure_migrations_table(conn) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS _migrations (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )


def applied_migration_ids(conn) -> set[int]:
    rows = conn.execute("SELECT id FROM _migrations ORDER BY id").fetchall()
    return {int(row["id"]) for row in rows}


def pending_migrations(applied: set[int]) -> List[Migration]:
    return [m for m in sorted(MIGRATIONS, key=lambda m: m.id) if m.id not in applied]


def run_migrations(conn) -> int:
    """Apply pending migrations on ``conn`` and return how many ran.

    The caller owns the transaction; each migration's statements and its
    bookkeeping row are executed on the same connection.
    """
    _ensure_migrations_table(conn)
    pending = pending_migrations(applied_migration_ids(conn))
    if not pending:
        logger.info("schema_up_to_date")
        return 0
    for migration in pending:
        logger.info("migration_applying", migration_id=migration.id, name=migration.name)
        for statement in migration.statements:
            conn.execute(statement)
        conn.execute(
            "INSERT INTO _migrations (id, name) VALUES (%s, %s)",
            (migration.id, migration.name),
        )
    logger.info("migrations_applied", count=len(pending))
    return len(pending)
