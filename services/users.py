"""
services/users.py -- User lifecycle operations: sync, listing, role change, deletion.

Cascade contract (delete_user):
  The target's tasks are deleted first, then the user row. These are two
  separate statements, not one transaction. If the process dies between
  them the tasks are gone and the user row remains; a retry of the delete
  finishes the job. Tasks can never outlive their owner because they go
  first.
"""

from __future__ import annotations

import logging

from auth.models import Principal, Role, User
from auth.policy import Operation, can_access, visible_user_roles
from auth.reconcile import ReconcileResult, UserReconciler
from auth.store import UserStore
from core.errors import AuthorizationError, NotFoundError, ValidationError
from tasks.store import TaskStore

logger = logging.getLogger("taskflow.services.users")


def sync_user(reconciler: UserReconciler, principal: Principal) -> ReconcileResult:
    return reconciler.reconcile(principal)


def list_users(user_store: UserStore, actor_role: Role) -> list[User]:
    """List users visible to actor_role: everyone for Admins, Candidates for Employees."""
    return user_store.list_users(roles=visible_user_roles(actor_role))


def update_role(user_store: UserStore, actor_role: Role, target_id: str, new_role: str) -> User:
    """Set target_id's role. Admin only.

    Raises:
        AuthorizationError: actor is not an Admin.
        ValidationError:    new_role is not Admin, Employee or Candidate.
        NotFoundError:      target_id has no user row.
    """
    if not can_access(actor_role, None, target_id, Operation.UPDATE_ROLE):
        raise AuthorizationError("forbidden", "Admin access required.")
    try:
        role = Role.parse(new_role)
    except ValueError:
        valid = ", ".join(r.value for r in Role)
        raise ValidationError("invalid_role", f"Role must be one of: {valid}.") from None

    if not user_store.update_role(target_id, role):
        raise NotFoundError("not_found", "User not found.")
    updated = user_store.get_user(target_id)
    # Deleted between the update and the read back.
    if updated is None:
        raise NotFoundError("not_found", "User not found.")
    logger.info("Role of %s set to %s", target_id, role.value)
    return updated


def delete_user(
    user_store: UserStore,
    task_store: TaskStore,
    actor_id: str,
    actor_role: Role,
    target_id: str,
) -> int:
    """Delete target_id and every task it owns. Returns the number of tasks removed.

    Raises:
        AuthorizationError: actor is not an Admin.
        ValidationError:    target_id is the actor's own id (checked before any write).
        NotFoundError:      target_id has no user row.
    """
    # Self-deletion is a 400 for Admins; everyone else fails the role check below.
    if actor_role is Role.ADMIN and target_id == actor_id:
        raise ValidationError("self_deletion", "Cannot delete yourself.")
    if not can_access(actor_role, actor_id, target_id, Operation.DELETE_USER):
        raise AuthorizationError("forbidden", "Admin access required.")

    if user_store.get_user(target_id) is None:
        raise NotFoundError("not_found", "User not found.")

    removed = task_store.delete_tasks_for_owner(target_id)
    if not user_store.delete_user(target_id):
        raise NotFoundError("not_found", "User not found.")
    logger.info("User %s deleted with %d task(s)", target_id, removed)
    return removed
