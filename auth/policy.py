"""
auth/policy.py -- Ownership policy: who may read or mutate which target.

Every decision is a pure function of (actor role, actor id, target owner id,
operation). Nothing here touches the database; the lifecycle services turn
these decisions into WHERE clauses or errors.

Rules:
  READ_TASKS   -- the owner always; anyone else only as Employee or Admin.
  CREATE_TASK  -- only for the actor's own id (tasks are never created on
                  someone else's behalf).
  DELETE_TASK  -- the owner, or an Admin for any owner.
  LIST_USERS   -- Employee or Admin. Employees see Candidate rows only.
  UPDATE_ROLE  -- Admin.
  DELETE_USER  -- Admin, and never the actor's own account.

Layer rule: no imports from api/, tasks/, or services/.
"""

from __future__ import annotations

from enum import Enum

from auth.models import Role
from core.errors import AuthorizationError


class Operation(str, Enum):
    READ_TASKS = "read_tasks"
    CREATE_TASK = "create_task"
    DELETE_TASK = "delete_task"
    LIST_USERS = "list_users"
    UPDATE_ROLE = "update_role"
    DELETE_USER = "delete_user"


_STAFF = frozenset({Role.EMPLOYEE, Role.ADMIN})


def _check_role(role: Role) -> None:
    if role not in (Role.ADMIN, Role.EMPLOYEE, Role.CANDIDATE):
        raise ValueError(f"Unhandled role: {role!r}")


def can_access(actor_role: Role, actor_id: str | None, target_owner_id: str | None, operation: Operation) -> bool:
    """Decide whether the actor may perform operation against target_owner_id.

    target_owner_id is the owner of the task(s) for task operations and the
    target user's subject id for user operations; it may be None for
    LIST_USERS, which has no single target.
    """
    _check_role(actor_role)
    is_self = target_owner_id is not None and target_owner_id == actor_id

    if operation is Operation.READ_TASKS:
        return is_self or actor_role in _STAFF
    if operation is Operation.CREATE_TASK:
        return is_self
    if operation is Operation.DELETE_TASK:
        return is_self or actor_role is Role.ADMIN
    if operation is Operation.LIST_USERS:
        return actor_role in _STAFF
    if operation is Operation.UPDATE_ROLE:
        return actor_role is Role.ADMIN
    if operation is Operation.DELETE_USER:
        return actor_role is Role.ADMIN and not is_self
    raise ValueError(f"Unhandled operation: {operation!r}")


def visible_user_roles(actor_role: Role) -> frozenset[Role] | None:
    """Return the roles whose users actor_role may list; None means no filter.

    Raises AuthorizationError for roles that may not list users at all.
    """
    _check_role(actor_role)
    if actor_role is Role.ADMIN:
        return None
    if actor_role is Role.EMPLOYEE:
        return frozenset({Role.CANDIDATE})
    raise AuthorizationError("forbidden", "Employee or Admin access required.")


def task_delete_owner_filter(actor_role: Role, actor_id: str) -> str | None:
    """Return the owner id a task deletion must be scoped to.

    Admins delete unscoped (None); everyone else only matches their own tasks.
    """
    _check_role(actor_role)
    return None if actor_role is Role.ADMIN else actor_id
