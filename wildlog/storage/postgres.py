from __future__ import annotations

from typing import Any, Dict, List, Optional

from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from wildlog.logging import get_logger
from wildlog.storage.errors import ConstraintViolation
from wildlog.storage.migrations import run_migrations
from wildlog.storage.models import Account, Sighting, new_id, unix_now

_SIGHTING_FIELDS = ("animal_name", "location", "photo_url")
_SIGHTING_COLUMNS = (
    "id, user_id, animal_name, location, timestamp_sighted, photo_url, "
    "created_at, updated_at, deleted_at"
)
_ACCOUNT_COLUMNS = "id, email, password_hash, created_at, last_login_at, deleted_at"


def _account_from_row(row: Dict[str, Any]) -> Account:
    return Account(
        id=str(row["id"]),
        email=row["email"],
        password_hash=row["password_hash"],
        created_at=int(row["created_at"]),
        last_login_at=row.get("last_login_at"),
        deleted_at=row.get("deleted_at"),
    )


def _sighting_from_row(row: Dict[str, Any]) -> Sighting:
    return Sighting(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        animal_name=row["animal_name"],
        location=row["location"],
        timestamp_sighted=int(row["timestamp_sighted"]),
        photo_url=row.get("photo_url"),
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
        deleted_at=row.get("deleted_at"),
    )


class PostgresStore:
    """Postgres-backed store for accounts and sightings."""

    def __init__(self, dsn: str, *, migrate: bool = False) -> None:
        self.dsn = dsn
        self.logger = get_logger(__name__)
        self.pool = ConnectionPool(
            self.dsn,
            min_size=2,
            max_size=10,
            kwargs={"row_factory": dict_row, "autocommit": False},
        )
        if migrate:
            self.migrate()
        self._verify_required_schema()

    def _connect(self):
        return self.pool.connection()

    def migrate(self) -> int:
        with self._connect() as conn:
            return run_migrations(conn)

    def _verify_required_schema(self) -> None:
        with self._connect() as conn:
            missing = []
            for table in ("account", "sighting"):
                row = conn.execute(
                    "SELECT to_regclass(%s) AS oid", (f"public.{table}",)
                ).fetchone()
                if not row or not row.get("oid"):
                    missing.append(table)
        if missing:
            raise RuntimeError(
                "Missing required Postgres tables: {}. Run scripts/manage.py migrate.".format(
                    ", ".join(sorted(missing))
                )
            )

    def close(self) -> None:
        self.pool.close()

    # -- accounts -----------------------------------------------------------

    def create_account(self, email: str, password_hash: str) -> Account:
        normalized = email.strip().lower()
        account = Account(id=new_id(), email=normalized, password_hash=password_hash)
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO account (id, email, password_hash, created_at) VALUES (%s, %s, %s, %s)",
                    (account.id, account.email, account.password_hash, account.created_at),
                )
        except errors.UniqueViolation:
            raise ConstraintViolation("email already exists", {"field": "email"})
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM account WHERE id = %s AND deleted_at IS NULL",
                (account_id,),
            ).fetchone()
        return _account_from_row(row) if row else None

    def get_account_by_email(self, email: str) -> Optional[Account]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM account WHERE lower(email) = %s AND deleted_at IS NULL",
                (email.strip().lower(),),
            ).fetchone()
        return _account_from_row(row) if row else None

    def touch_last_login(self, account_id: str, at: Optional[int] = None) -> Optional[int]:
        stamp = unix_now() if at is None else at
        with self._connect() as conn:
            row = conn.execute(
                "UPDATE account SET last_login_at = %s WHERE id = %s AND deleted_at IS NULL RETURNING id",
                (stamp, account_id),
            ).fetchone()
        return stamp if row else None

    def soft_delete_account(self, account_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "UPDATE account SET deleted_at = %s WHERE id = %s AND deleted_at IS NULL RETURNING id",
                (unix_now(), account_id),
            ).fetchone()
        return row is not None

    # -- sightings ----------------------------------------------------------

    def create_sighting(
        self,
        user_id: str,
        animal_name: str,
        location: str,
        photo_url: Optional[str] = None,
        *,
        timestamp_sighted: Optional[int] = None,
    ) -> Sighting:
        now = unix_now()
        sighting = Sighting(
            id=new_id(),
            user_id=user_id,
            animal_name=animal_name,
            location=location,
            timestamp_sighted=now if timestamp_sighted is None else timestamp_sighted,
            photo_url=photo_url,
            created_at=now,
            updated_at=now,
        )
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO sighting (id, user_id, animal_name, location, timestamp_sighted,
                                          photo_url, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        sighting.id,
                        sighting.user_id,
                        sighting.animal_name,
                        sighting.location,
                        sighting.timestamp_sighted,
                        sighting.photo_url,
                        sighting.created_at,
                        sighting.updated_at,
                    ),
                )
        except errors.ForeignKeyViolation:
            raise ConstraintViolation("sighting owner missing", {"user_id": user_id})
        return sighting

    def get_sighting(self, sighting_id: str) -> Optional[Sighting]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_SIGHTING_COLUMNS} FROM sighting WHERE id = %s AND deleted_at IS NULL",
                (sighting_id,),
            ).fetchone()
        return _sighting_from_row(row) if row else None

    def list_sightings(
        self, user_id: str, *, limit: Optional[int] = None, offset: int = 0
    ) -> List[Sighting]:
        query = (
            f"SELECT {_SIGHTING_COLUMNS} FROM sighting "
            "WHERE user_id = %s AND deleted_at IS NULL "
            "ORDER BY created_at DESC, seq DESC"
        )
        params: List[Any] = [user_id]
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)
        if offset:
            query += " OFFSET %s"
            params.append(offset)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_sighting_from_row(row) for row in rows]

    def update_sighting(self, sighting_id: str, changes: dict) -> Optional[Sighting]:
        unknown = set(changes) - set(_SIGHTING_FIELDS)
        if unknown:
            raise ValueError(f"unsupported sighting fields: {sorted(unknown)}")
        # column names come from the fixed whitelist above
        assignments = [f"{name} = %s" for name in _SIGHTING_FIELDS if name in changes]
        params: List[Any] = [changes[name] for name in _SIGHTING_FIELDS if name in changes]
        assignments.append("updated_at = %s")
        params.extend([unix_now(), sighting_id])
        with self._connect() as conn:
            row = conn.execute(
                f"UPDATE sighting SET {', '.join(assignments)} "
                f"WHERE id = %s AND deleted_at IS NULL RETURNING {_SIGHTING_COLUMNS}",
                params,
            ).fetchone()
        return _sighting_from_row(row) if row else None

    def soft_delete_sighting(self, sighting_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "UPDATE sighting SET deleted_at = %s WHERE id = %s AND deleted_at IS NULL RETURNING id",
                (unix_now(), sighting_id),
            ).fetchone()
        return row is not None

    def clear_all(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM sighting")
            conn.execute("DELETE FROM account")
        self.logger.warning("store_cleared")
