"""
api/routes/v1/tasks.py -- Task endpoints.

Routes:
  GET    /tasks                -- caller's own tasks, newest first
  GET    /tasks/{id}           -- another user's tasks (Employee or Admin)
  POST   /add-task             -- create a task owned by the caller
  DELETE /delete-task/{id}     -- delete a task (owner, or Admin for any task)

IDOR guard: DELETE /delete-task/{id} passes the caller's id to the store as
part of the WHERE clause unless the caller is an Admin. A task that belongs to
someone else and a task that does not exist produce the same 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import MessageResponse, TaskCreate, TaskResponse
from auth.dependencies import get_principal, require_employee_or_admin
from auth.models import Principal
from auth.store import UserStore
from core.errors import NotFoundOrUnauthorized
from services import tasks as task_service
from tasks.store import TaskStore

router = APIRouter()


@router.get("/tasks", response_model=list[TaskResponse])
def list_own_tasks(request: Request, principal: Principal = Depends(get_principal)) -> list[TaskResponse]:
    task_store: TaskStore = request.app.state.task_store
    return [TaskResponse.from_task(t) for t in task_service.list_own_tasks(task_store, principal.subject_id)]


@router.get("/tasks/{user_id}", response_model=list[TaskResponse])
def list_user_tasks(
    request: Request,
    user_id: str,
    principal: Principal = Depends(require_employee_or_admin),
) -> list[TaskResponse]:
    """Return the tasks owned by user_id (directory "View Tasks")."""
    task_store: TaskStore = request.app.state.task_store
    return [TaskResponse.from_task(t) for t in task_service.list_tasks_for(task_store, principal, user_id)]


@router.post("/add-task", response_model=TaskResponse, status_code=201)
def add_task(
    request: Request,
    body: TaskCreate,
    principal: Principal = Depends(get_principal),
) -> TaskResponse:
    """Create a task for the caller. The caller must have synced first."""
    task_store: TaskStore = request.app.state.task_store
    user_store: UserStore = request.app.state.user_store
    task = task_service.create_task(task_store, user_store, principal.subject_id, body.task_text, body.status)
    return TaskResponse.from_task(task)


@router.delete("/delete-task/{task_id}", response_model=MessageResponse)
def delete_task(
    request: Request,
    task_id: str,
    principal: Principal = Depends(get_principal),
) -> MessageResponse:
    # A non-numeric id cannot match any task; answer like any other miss.
    if not (task_id.isascii() and task_id.isdigit()):
        raise NotFoundOrUnauthorized("not_found", "Task not found.")
    task_store: TaskStore = request.app.state.task_store
    task_service.delete_task(task_store, principal.subject_id, principal.role, int(task_id))
    return MessageResponse(message="Deleted")
