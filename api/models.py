"""
API request and response models for Taskflow REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route handlers
map between the two.

Wire names (task_text, user_id, cognito_id, firstName, user_role) are the ones
the existing browser client already consumes.

Role and status arrive as plain strings and are validated in services/, so an
unknown value is reported as a 400 with a specific code rather than a generic
schema error.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from tasks.models import Task

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Request body for POST /add-task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_text: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[str] = Field(default=None, max_length=30)


class RoleUpdate(BaseModel):
    """Request body for PUT /update-role/{id}."""

    model_config = ConfigDict(str_strip_whitespace=True)

    role: str = Field(default="", max_length=30)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SyncResponse(BaseModel):
    """Response for POST /sync-user: message is "Created" or "Synced"."""

    model_config = ConfigDict(frozen=True)

    message: str
    role: str


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: int
    user_id: str
    task_text: str
    status: str
    created_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        """Build a TaskResponse from a domain Task."""
        return cls(
            task_id=task.id,
            user_id=task.owner_id,
            task_text=task.text,
            status=task.status,
            created_at=task.created_at,
        )


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    cognito_id: str
    email: str
    firstName: str
    user_role: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            cognito_id=user.subject_id,
            email=user.email,
            firstName=user.display_name,
            user_role=user.role.value,
        )


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
