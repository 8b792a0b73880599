"""Unit tests for services/tasks.py and services/users.py.

Covers:
- create_task(): text trimming and limits, status default and validation,
  user_not_found precondition, including a user deleted before the insert
- delete_task(): not-found merging for a Candidate deleting another user's task,
  Admin deletes any task
- list_tasks_for(): Candidate reading someone else is forbidden
- list_users(): Employee sees Candidates only, Admin sees everyone
- update_role(): invalid role, unknown or concurrently deleted target,
  non-admin actor
- delete_user(): cascade, self-deletion, unknown target, non-admin actor
"""

import pytest

from auth.models import Principal, Role, User
from auth.store import UserStore
from core.errors import (
    AuthorizationError,
    NotFoundError,
    NotFoundOrUnauthorized,
    PreconditionError,
    ValidationError,
)
from services import tasks as task_service
from services import users as user_service
from tasks.store import TaskStore


@pytest.fixture
def people(user_store: UserStore) -> None:
    """u1 Candidate, u2 Candidate, emp Employee, adm Admin."""
    for sid, name, role in (
        ("u1", "Alice", Role.CANDIDATE),
        ("u2", "Bob", Role.CANDIDATE),
        ("emp", "Erin", Role.EMPLOYEE),
        ("adm", "Zed", Role.ADMIN),
    ):
        user_store.upsert_user(User(subject_id=sid, email=f"{sid}@example.com", display_name=name, role=role))


def _principal(sid: str, role: Role) -> Principal:
    return Principal(subject_id=sid, email=f"{sid}@example.com", display_name=sid, groups=(), role=role)


class TestCreateTask:
    def test_trims_and_defaults_status(self, task_store: TaskStore, user_store: UserStore, people):
        task = task_service.create_task(task_store, user_store, "u1", "  buy milk  ")
        assert task.text == "buy milk"
        assert task.status == "Personal"

    def test_explicit_status(self, task_store: TaskStore, user_store: UserStore, people):
        task = task_service.create_task(task_store, user_store, "u1", "deploy", "Professional")
        assert task.status == "Professional"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_text(self, task_store: TaskStore, user_store: UserStore, people, text):
        with pytest.raises(ValidationError) as exc:
            task_service.create_task(task_store, user_store, "u1", text)
        assert exc.value.code == "text_required"
        assert exc.value.message == "Text required."

    def test_text_too_long(self, task_store: TaskStore, user_store: UserStore, people):
        with pytest.raises(ValidationError) as exc:
            task_service.create_task(task_store, user_store, "u1", "x" * (task_service.MAX_TASK_TEXT + 1))
        assert exc.value.code == "text_too_long"

    def test_text_at_limit(self, task_store: TaskStore, user_store: UserStore, people):
        task = task_service.create_task(task_store, user_store, "u1", "x" * task_service.MAX_TASK_TEXT)
        assert len(task.text) == task_service.MAX_TASK_TEXT

    def test_invalid_status(self, task_store: TaskStore, user_store: UserStore, people):
        with pytest.raises(ValidationError) as exc:
            task_service.create_task(task_store, user_store, "u1", "deploy", "Someday")
        assert exc.value.code == "invalid_status"

    def test_unsynced_user(self, task_store: TaskStore, user_store: UserStore):
        with pytest.raises(PreconditionError) as exc:
            task_service.create_task(task_store, user_store, "ghost", "hello")
        assert exc.value.code == "user_not_found"
        assert task_store.list_tasks("ghost") == []

    def test_user_deleted_before_insert(self, task_store: TaskStore, user_store: UserStore, monkeypatch):
        # exists() passes, then the row is gone by the time the insert runs.
        monkeypatch.setattr(user_store, "exists", lambda subject_id: True)
        with pytest.raises(PreconditionError) as exc:
            task_service.create_task(task_store, user_store, "ghost", "hello")
        assert exc.value.code == "user_not_found"
        assert task_store.list_tasks("ghost") == []


class TestDeleteTask:
    def test_owner_deletes(self, task_store: TaskStore, user_store: UserStore, people):
        task = task_service.create_task(task_store, user_store, "u1", "mine")
        task_service.delete_task(task_store, "u1", Role.CANDIDATE, task.id)
        assert task_store.get_task(task.id) is None

    def test_candidate_cannot_delete_other(self, task_store: TaskStore, user_store: UserStore, people):
        task = task_service.create_task(task_store, user_store, "u1", "mine")
        with pytest.raises(NotFoundOrUnauthorized):
            task_service.delete_task(task_store, "u2", Role.CANDIDATE, task.id)
        assert task_store.get_task(task.id) is not None

    def test_employee_cannot_delete_other(self, task_store: TaskStore, user_store: UserStore, people):
        task = task_service.create_task(task_store, user_store, "u1", "mine")
        with pytest.raises(NotFoundOrUnauthorized):
            task_service.delete_task(task_store, "emp", Role.EMPLOYEE, task.id)

    def test_missing_and_foreign_look_the_same(self, task_store: TaskStore, user_store: UserStore, people):
        task = task_service.create_task(task_store, user_store, "u1", "mine")
        with pytest.raises(NotFoundOrUnauthorized) as foreign:
            task_service.delete_task(task_store, "u2", Role.CANDIDATE, task.id)
        with pytest.raises(NotFoundOrUnauthorized) as missing:
            task_service.delete_task(task_store, "u2", Role.CANDIDATE, 99999)
        assert (foreign.value.code, foreign.value.message) == (missing.value.code, missing.value.message)

    def test_admin_deletes_any(self, task_store: TaskStore, user_store: UserStore, people):
        task = task_service.create_task(task_store, user_store, "u1", "mine")
        task_service.delete_task(task_store, "adm", Role.ADMIN, task.id)
        assert task_store.get_task(task.id) is None


class TestListTasksFor:
    def test_candidate_forbidden_for_others(self, task_store: TaskStore, people):
        with pytest.raises(AuthorizationError):
            task_service.list_tasks_for(task_store, _principal("u2", Role.CANDIDATE), "u1")

    def test_employee_reads_others(self, task_store: TaskStore, user_store: UserStore, people):
        task_service.create_task(task_store, user_store, "u1", "mine")
        tasks = task_service.list_tasks_for(task_store, _principal("emp", Role.EMPLOYEE), "u1")
        assert [t.text for t in tasks] == ["mine"]

    def test_unknown_target_is_empty(self, task_store: TaskStore, people):
        assert task_service.list_tasks_for(task_store, _principal("adm", Role.ADMIN), "ghost") == []


class TestUserService:
    def test_employee_sees_candidates(self, user_store: UserStore, people):
        users = user_service.list_users(user_store, Role.EMPLOYEE)
        assert [u.subject_id for u in users] == ["u1", "u2"]

    def test_admin_sees_everyone(self, user_store: UserStore, people):
        users = user_service.list_users(user_store, Role.ADMIN)
        assert [u.display_name for u in users] == ["Alice", "Bob", "Erin", "Zed"]

    def test_candidate_cannot_list(self, user_store: UserStore, people):
        with pytest.raises(AuthorizationError):
            user_service.list_users(user_store, Role.CANDIDATE)

    def test_update_role(self, user_store: UserStore, people):
        user = user_service.update_role(user_store, Role.ADMIN, "u1", "Employee")
        assert user.role is Role.EMPLOYEE

    def test_update_role_invalid(self, user_store: UserStore, people):
        with pytest.raises(ValidationError) as exc:
            user_service.update_role(user_store, Role.ADMIN, "u1", "Manager")
        assert exc.value.code == "invalid_role"
        assert user_store.get_role("u1") is Role.CANDIDATE

    def test_update_role_unknown_target(self, user_store: UserStore, people):
        with pytest.raises(NotFoundError):
            user_service.update_role(user_store, Role.ADMIN, "ghost", "Employee")

    def test_update_role_non_admin(self, user_store: UserStore, people):
        with pytest.raises(AuthorizationError):
            user_service.update_role(user_store, Role.EMPLOYEE, "u1", "Admin")

    def test_update_role_target_deleted_concurrently(self, user_store: UserStore, people, monkeypatch):
        monkeypatch.setattr(user_store, "update_role", lambda subject_id, role: False)
        with pytest.raises(NotFoundError):
            user_service.update_role(user_store, Role.ADMIN, "u1", "Employee")

    def test_update_role_target_deleted_before_read_back(self, user_store: UserStore, people, monkeypatch):
        monkeypatch.setattr(user_store, "get_user", lambda subject_id: None)
        with pytest.raises(NotFoundError):
            user_service.update_role(user_store, Role.ADMIN, "u1", "Employee")
        assert user_store.get_role("u1") is Role.EMPLOYEE


class TestDeleteUser:
    def test_cascade(self, task_store: TaskStore, user_store: UserStore, people):
        for text in ("a", "b"):
            task_service.create_task(task_store, user_store, "u1", text)
        task_service.create_task(task_store, user_store, "u2", "keep")
        removed = user_service.delete_user(user_store, task_store, "adm", Role.ADMIN, "u1")
        assert removed == 2
        assert user_store.get_user("u1") is None
        assert task_store.list_tasks("u1") == []
        assert len(task_store.list_tasks("u2")) == 1

    def test_self_deletion(self, task_store: TaskStore, user_store: UserStore, people):
        with pytest.raises(ValidationError) as exc:
            user_service.delete_user(user_store, task_store, "adm", Role.ADMIN, "adm")
        assert exc.value.code == "self_deletion"
        assert user_store.get_user("adm") is not None

    def test_unknown_target(self, task_store: TaskStore, user_store: UserStore, people):
        with pytest.raises(NotFoundError):
            user_service.delete_user(user_store, task_store, "adm", Role.ADMIN, "ghost")

    def test_non_admin(self, task_store: TaskStore, user_store: UserStore, people):
        with pytest.raises(AuthorizationError):
            user_service.delete_user(user_store, task_store, "emp", Role.EMPLOYEE, "u1")
        assert user_store.get_user("u1") is not None
