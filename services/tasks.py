"""
services/tasks.py -- Task lifecycle operations guarded by the ownership policy.

Each function classifies its failures into core.errors at the point they
happen; route handlers only translate results into response models.

Referential precondition: a task can only be created for a subject that has a
user row. The check runs before the insert, and the foreign key on
tasks.owner_id backs it up at the database level.

Not-found merging: delete_task() never reveals whether a task id exists when
the actor is not allowed to delete it. A scoped delete that matches nothing
raises the same NotFoundOrUnauthorized as a delete of a missing id.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import Principal, Role
from auth.policy import Operation, can_access, task_delete_owner_filter
from auth.store import UserStore
from core.errors import AuthorizationError, NotFoundOrUnauthorized, PreconditionError, ValidationError
from tasks.models import BASELINE_STATUS, TASK_STATUSES, Task
from tasks.store import TaskStore

logger = logging.getLogger("taskflow.services.tasks")

MAX_TASK_TEXT = 1000


def list_own_tasks(task_store: TaskStore, actor_id: str) -> list[Task]:
    return task_store.list_tasks(actor_id)


def list_tasks_for(task_store: TaskStore, principal: Principal, target_id: str) -> list[Task]:
    """Return target_id's tasks if the principal may read them.

    An unknown target yields an empty list, the same as a user with no tasks.
    """
    if not can_access(principal.role, principal.subject_id, target_id, Operation.READ_TASKS):
        raise AuthorizationError("forbidden", "Employee or Admin access required.")
    return task_store.list_tasks(target_id)


def create_task(
    task_store: TaskStore,
    user_store: UserStore,
    actor_id: str,
    text: Optional[str],
    status: Optional[str] = None,
) -> Task:
    """Create a task owned by actor_id.

    Raises:
        ValidationError:   text is empty after trimming, too long, or status is
                           not one of TASK_STATUSES.
        PreconditionError: actor_id has no user row (sync-user was never called
                           or the account was deleted).
    """
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError("text_required", "Text required.")
    if len(cleaned) > MAX_TASK_TEXT:
        raise ValidationError("text_too_long", f"Text must be at most {MAX_TASK_TEXT} characters.")

    category = status.strip() if status and status.strip() else BASELINE_STATUS
    if category not in TASK_STATUSES:
        raise ValidationError("invalid_status", f"Status must be one of: {', '.join(TASK_STATUSES)}.")

    if not user_store.exists(actor_id):
        raise PreconditionError("user_not_found", "User profile not found. Please refresh.")

    try:
        task = task_store.create_task(Task(owner_id=actor_id, text=cleaned, status=category))
    except IntegrityError as exc:
        # The user row was deleted between the check above and the insert.
        raise PreconditionError("user_not_found", "User profile not found. Please refresh.") from exc
    logger.info("Task %s created by %s", task.id, actor_id)
    return task


def delete_task(task_store: TaskStore, actor_id: str, actor_role: Role, task_id: int) -> None:
    """Delete task_id if the actor owns it, or unconditionally for an Admin.

    Raises NotFoundOrUnauthorized when nothing matched the scoped predicate.
    """
    owner_filter = task_delete_owner_filter(actor_role, actor_id)
    if not task_store.delete_task(task_id, owner_id=owner_filter):
        raise NotFoundOrUnauthorized("not_found", "Task not found.")
    logger.info("Task %s deleted by %s (%s)", task_id, actor_id, actor_role.value)
