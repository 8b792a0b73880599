"""Unit tests for tasks/store.py -- TaskStore persistence.

Covers:
- create_task() assigns id and created_at, keeps status
- list_tasks() returns only the owner's tasks, newest first
- delete_task() scoped by owner_id matches nothing for someone else's task
- delete_task() unscoped (admin path) deletes any task
- delete_tasks_for_owner() removes every task of one owner and nothing else
- foreign key: a task for an unknown owner is rejected by the database
"""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from auth.store import UserStore
from tasks.models import BASELINE_STATUS, Task
from tasks.store import TaskStore


@pytest.fixture
def owners(user_store: UserStore) -> tuple[str, str]:
    for sid, name in (("u1", "Alice"), ("u2", "Bob")):
        user_store.upsert_user(User(subject_id=sid, email=f"{sid}@example.com", display_name=name, role=Role.CANDIDATE))
    return "u1", "u2"


class TestCreate:
    def test_assigns_id_and_timestamp(self, task_store: TaskStore, owners):
        task = task_store.create_task(Task(owner_id="u1", text="write report"))
        assert task.id is not None
        assert task.created_at
        assert task.status == BASELINE_STATUS
        assert task_store.get_task(task.id) == task

    def test_keeps_status(self, task_store: TaskStore, owners):
        task = task_store.create_task(Task(owner_id="u1", text="ship it", status="Urgent"))
        assert task_store.get_task(task.id).status == "Urgent"

    def test_unknown_owner_rejected(self, task_store: TaskStore):
        with pytest.raises(IntegrityError):
            task_store.create_task(Task(owner_id="ghost", text="orphan"))


class TestList:
    def test_only_owner_tasks_newest_first(self, task_store: TaskStore, owners):
        first = task_store.create_task(Task(owner_id="u1", text="one"))
        task_store.create_task(Task(owner_id="u2", text="other"))
        second = task_store.create_task(Task(owner_id="u1", text="two"))
        listed = task_store.list_tasks("u1")
        assert [t.id for t in listed] == [second.id, first.id]

    def test_unknown_owner_is_empty(self, task_store: TaskStore):
        assert task_store.list_tasks("nobody") == []

    def test_count(self, task_store: TaskStore, owners):
        task_store.create_task(Task(owner_id="u1", text="one"))
        task_store.create_task(Task(owner_id="u1", text="two"))
        assert task_store.count_tasks("u1") == 2
        assert task_store.count_tasks("u2") == 0


class TestDelete:
    def test_scoped_delete_own(self, task_store: TaskStore, owners):
        task = task_store.create_task(Task(owner_id="u1", text="mine"))
        assert task_store.delete_task(task.id, owner_id="u1") is True
        assert task_store.get_task(task.id) is None

    def test_scoped_delete_other_matches_nothing(self, task_store: TaskStore, owners):
        task = task_store.create_task(Task(owner_id="u1", text="mine"))
        assert task_store.delete_task(task.id, owner_id="u2") is False
        assert task_store.get_task(task.id) is not None

    def test_unscoped_delete(self, task_store: TaskStore, owners):
        task = task_store.create_task(Task(owner_id="u1", text="mine"))
        assert task_store.delete_task(task.id) is True

    def test_missing_id(self, task_store: TaskStore):
        assert task_store.delete_task(9999) is False

    def test_delete_for_owner(self, task_store: TaskStore, owners):
        for text in ("a", "b", "c"):
            task_store.create_task(Task(owner_id="u1", text=text))
        kept = task_store.create_task(Task(owner_id="u2", text="keep"))
        assert task_store.delete_tasks_for_owner("u1") == 3
        assert task_store.list_tasks("u1") == []
        assert task_store.get_task(kept.id) is not None
