"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper (same as tasks/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route, service and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Atomic upsert:
  upsert_user() is the only way a user row comes into existence. It is a
  single INSERT ... ON CONFLICT (or ON DUPLICATE KEY on MySQL) statement keyed
  on subject_id. On conflict only email and display_name are refreshed; the
  role column is never part of the update clause, so two concurrent first
  sign-ins for the same subject converge on one row and one role. The caller
  learns which request inserted the row from the second element of the result.

Layer rule: no imports from api/, tasks/, or services/.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, String, Table, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Connection, Engine

from auth.models import Role, User
from core.db import metadata

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users_table = Table(
    "users",
    metadata,
    Column("subject_id", String(128), primary_key=True),
    Column("email", String(320), nullable=False),
    Column("display_name", String(255), nullable=False, server_default="User"),
    Column("role", String(20), nullable=False, server_default=Role.CANDIDATE.value),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


_stamp_lock = threading.Lock()
_last_stamp: datetime | None = None


def _now_iso() -> str:
    """Current UTC time, strictly increasing within the process.

    upsert_user() tells its insert apart from a concurrent one by comparing
    created_at, so two calls must never send the same value.
    """
    global _last_stamp
    with _stamp_lock:
        now = datetime.now(timezone.utc)
        if _last_stamp is not None and now <= _last_stamp:
            now = _last_stamp + timedelta(microseconds=1)
        _last_stamp = now
    return now.isoformat()


def _upsert_statement(dialect_name: str, values: dict):
    """Build an insert-or-update-profile statement for the engine's dialect.

    Only email and display_name are in the update set. Dialects without a
    native upsert are rejected rather than emulated with SELECT-then-INSERT,
    which would not be atomic.
    """
    if dialect_name == "sqlite":
        stmt = sqlite.insert(users_table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[users_table.c.subject_id],
            set_={"email": stmt.excluded.email, "display_name": stmt.excluded.display_name},
        )
    if dialect_name == "postgresql":
        stmt = postgresql.insert(users_table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[users_table.c.subject_id],
            set_={"email": stmt.excluded.email, "display_name": stmt.excluded.display_name},
        )
    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql.insert(users_table).values(**values)
        return stmt.on_duplicate_key_update(
            email=stmt.inserted.email,
            display_name=stmt.inserted.display_name,
        )
    raise NotImplementedError(f"No atomic upsert available for dialect {dialect_name!r}")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(engine)
        user, inserted = store.upsert_user(User(subject_id="abc", email="a@x.io", display_name="A", role=Role.CANDIDATE))
        store.get_user("abc")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[users_table])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_user(self, subject_id: str) -> User | None:
        """Look up a user by subject id. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users_table.select().where(users_table.c.subject_id == subject_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_role(self, subject_id: str) -> Role | None:
        """Return only the persisted role for subject_id, or None if no row exists."""
        with self.engine.connect() as conn:
            value = conn.execute(
                select(users_table.c.role).where(users_table.c.subject_id == subject_id)
            ).scalar_one_or_none()
        return Role.parse(value) if value is not None else None

    def exists(self, subject_id: str) -> bool:
        return self.get_role(subject_id) is not None

    def list_users(self, roles: Iterable[Role] | None = None) -> list[User]:
        """Return users ordered by display name.

        roles=None returns everyone; otherwise only users whose role is in roles.
        """
        stmt = users_table.select().order_by(users_table.c.display_name, users_table.c.subject_id)
        if roles is not None:
            stmt = stmt.where(users_table.c.role.in_([r.value for r in roles]))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def upsert_user(self, user: User) -> tuple[User, bool]:
        """Insert user, or refresh email/display_name if the subject already exists.

        Returns (stored user, inserted). user.role is used only when the row is
        created. The stored User is read back inside the same transaction, so
        its role is whatever the row holds -- which may differ from user.role
        if another request created the row first. inserted is True only when
        this call wrote the row: created_at is never in the update set, so a
        read-back timestamp equal to the one just sent means the insert won.
        """
        values = {
            "subject_id": user.subject_id,
            "email": user.email,
            "display_name": user.display_name,
            "role": user.role.value,
            "created_at": _now_iso(),
        }
        with self.engine.begin() as conn:
            conn.execute(_upsert_statement(self.engine.dialect.name, values))
            row = _fetch_user_row(conn, user.subject_id)
        return _row_to_user(row), row.created_at == values["created_at"]

    def update_role(self, subject_id: str, role: Role) -> bool:
        """Set the role for subject_id. Returns False if no such user exists."""
        with self.engine.begin() as conn:
            result = conn.execute(
                users_table.update().where(users_table.c.subject_id == subject_id).values(role=role.value)
            )
        return result.rowcount > 0

    def delete_user(self, subject_id: str) -> bool:
        """Delete the user row. Returns True if deleted, False if not found.

        The caller must remove the user's tasks first; tasks.owner_id is a
        foreign key to this row.
        """
        with self.engine.begin() as conn:
            result = conn.execute(users_table.delete().where(users_table.c.subject_id == subject_id))
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _fetch_user_row(conn: Connection, subject_id: str):
    return conn.execute(users_table.select().where(users_table.c.subject_id == subject_id)).one()


def _row_to_user(row) -> User:
    return User(
        subject_id=row.subject_id,
        email=row.email,
        display_name=row.display_name,
        role=Role.parse(row.role),
        created_at=row.created_at,
    )
