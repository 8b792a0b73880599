"""
api/routes/v1/users.py -- Account sync and user management endpoints.

Routes:
  POST   /sync-user            -- create-or-fetch the caller's user row (any authenticated user)
  GET    /users                -- list users (Employee: Candidates only; Admin: everyone)
  PUT    /update-role/{id}     -- change a user's role (Admin only)
  DELETE /delete-user/{id}     -- delete a user and their tasks (Admin only, never self)

Auth policy:
  Every route requires a bearer token (get_principal). The role gate runs as a
  dependency before the handler body; ownership and self-protection rules run
  inside services/users.py so the same checks apply to the CLI.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import MessageResponse, RoleUpdate, SyncResponse, UserResponse
from auth.dependencies import get_principal, require_admin, require_employee_or_admin
from auth.models import Principal
from auth.reconcile import UserReconciler
from auth.store import UserStore
from services import users as user_service
from tasks.store import TaskStore

router = APIRouter()


@router.post("/sync-user", response_model=SyncResponse)
def sync_user(request: Request, principal: Principal = Depends(get_principal)) -> SyncResponse:
    """Reconcile the caller with the user table and return the authoritative role.

    First call for a subject creates the row ("Created"); later calls return
    the persisted role unchanged ("Synced").
    """
    reconciler: UserReconciler = request.app.state.reconciler
    result = user_service.sync_user(reconciler, principal)
    return SyncResponse(message="Created" if result.created else "Synced", role=result.user.role.value)


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request, principal: Principal = Depends(require_employee_or_admin)) -> list[UserResponse]:
    """List users visible to the caller, ordered by display name."""
    user_store: UserStore = request.app.state.user_store
    users = user_service.list_users(user_store, principal.role)
    return [UserResponse.from_user(u) for u in users]


@router.put("/update-role/{user_id}", response_model=MessageResponse)
def update_role(
    request: Request,
    user_id: str,
    body: RoleUpdate,
    principal: Principal = Depends(require_admin),
) -> MessageResponse:
    """Set a user's role. The change applies on that user's next request."""
    user_store: UserStore = request.app.state.user_store
    user_service.update_role(user_store, principal.role, user_id, body.role)
    return MessageResponse(message="Role Updated")


@router.delete("/delete-user/{user_id}", response_model=MessageResponse)
def delete_user(
    request: Request,
    user_id: str,
    principal: Principal = Depends(require_admin),
) -> MessageResponse:
    """Delete a user after deleting every task they own."""
    user_store: UserStore = request.app.state.user_store
    task_store: TaskStore = request.app.state.task_store
    user_service.delete_user(user_store, task_store, principal.subject_id, principal.role, user_id)
    return MessageResponse(message="User removed")
