"""
tasks/store.py -- SQLAlchemy Core persistence layer for tasks.

Uses SQLAlchemy Core (not ORM) so the dataclass in tasks/models.py remains
the authoritative domain representation.

Pattern: Repository + Data Mapper. TaskStore is the repository; _row_to_task
is the mapper. Services never touch SQL directly.

Ownership scoping lives in the WHERE clause: delete_task() takes an optional
owner_id, and when one is given a task belonging to anyone else simply does
not match. The caller cannot tell "missing" from "not yours" -- both return
False.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TaskStore(engine)
    task = store.create_task(Task(owner_id="abc", text="write report"))
    store.list_tasks("abc")
    store.delete_task(task.id, owner_id="abc")
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from auth.store import users_table
from core.db import metadata
from tasks.models import BASELINE_STATUS, Task

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

tasks_table = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", String(128), ForeignKey(users_table.c.subject_id), nullable=False, index=True),
    Column("text", Text, nullable=False),
    Column("status", String(30), nullable=False, server_default=BASELINE_STATUS),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TaskStore:
    """Repository for Task entities."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[users_table, tasks_table])

    def create_task(self, task: Task) -> Task:
        """Insert a task and return it with its assigned id and timestamp.

        Raises sqlalchemy.exc.IntegrityError if owner_id has no user row.
        """
        created_at = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                tasks_table.insert().values(
                    owner_id=task.owner_id,
                    text=task.text,
                    status=task.status,
                    created_at=created_at,
                )
            )
            task_id = result.inserted_primary_key[0]
        return Task(id=task_id, owner_id=task.owner_id, text=task.text, status=task.status, created_at=created_at)

    def get_task(self, task_id: int) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(tasks_table.select().where(tasks_table.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(self, owner_id: str) -> list[Task]:
        """Return the owner's tasks, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                tasks_table.select()
                .where(tasks_table.c.owner_id == owner_id)
                .order_by(tasks_table.c.created_at.desc(), tasks_table.c.id.desc())
            ).fetchall()
        return [_row_to_task(r) for r in rows]

    def count_tasks(self, owner_id: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(tasks_table).where(tasks_table.c.owner_id == owner_id)
            ).scalar()
        return result or 0

    def delete_task(self, task_id: int, owner_id: Optional[str] = None) -> bool:
        """Delete a task, optionally scoped to owner_id.

        owner_id=None deletes regardless of owner (admin path). Returns True
        if a row was deleted, False if nothing matched the predicate.
        """
        stmt = tasks_table.delete().where(tasks_table.c.id == task_id)
        if owner_id is not None:
            stmt = stmt.where(tasks_table.c.owner_id == owner_id)
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0

    def delete_tasks_for_owner(self, owner_id: str) -> int:
        """Delete every task owned by owner_id. Returns the number removed."""
        with self.engine.begin() as conn:
            result = conn.execute(tasks_table.delete().where(tasks_table.c.owner_id == owner_id))
        return result.rowcount


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        owner_id=row.owner_id,
        text=row.text,
        status=row.status,
        created_at=row.created_at,
    )
