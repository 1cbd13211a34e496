"""
API request and response models for Taskboard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route
handlers map between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from auth.models import User
from tasks.models import Task

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PriorityEnum(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class StatusEnum(str, Enum):
    todo = "todo"
    in_progress = "in_progress"
    completed = "completed"


class SortByEnum(str, Enum):
    created_at = "created_at"
    due_date = "due_date"
    priority = "priority"
    title = "title"


class OrderEnum(str, Enum):
    asc = "asc"
    desc = "desc"


# ---------------------------------------------------------------------------
# Shared envelopes
# ---------------------------------------------------------------------------


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


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    username and email are trimmed; password is kept exactly as sent.
    """

    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    # bcrypt ignores bytes past 72; the cap keeps every character significant.
    password: str = Field(min_length=6, max_length=72)

    @field_validator("username", "email", mode="before")
    @classmethod
    def strip_identity(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > 72:
            raise ValueError("password must be at most 72 bytes")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login. password is not trimmed."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=72)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value


class UserPublic(BaseModel):
    """User fields safe to return to clients. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class AuthResponse(BaseModel):
    """Response for successful register/login: the session id and the account."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: UserPublic


# ---------------------------------------------------------------------------
# Tasks -- request models
# ---------------------------------------------------------------------------


class TaskWrite(BaseModel):
    """Request body for POST /api/v1/tasks and PUT /api/v1/tasks/{id}.

    priority is optional: on create it defaults to medium, on update an
    omitted priority leaves the stored value unchanged.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=10_000)
    due_date: Optional[datetime] = None
    priority: Optional[PriorityEnum] = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Store every due date in UTC; naive values are taken to be UTC already."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def due_date_iso(self) -> Optional[str]:
        return self.due_date.isoformat() if self.due_date else None


class TaskStatusWrite(BaseModel):
    """Request body for PATCH /api/v1/tasks/{id}/status."""

    status: StatusEnum


# ---------------------------------------------------------------------------
# Tasks -- response models
# ---------------------------------------------------------------------------


class TaskResponse(BaseModel):
    """One task as returned to its owner."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    title: str
    description: str
    due_date: Optional[str]
    priority: str
    status: str
    created_at: str
    updated_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        """Build a TaskResponse from a domain Task. Drops the soft-delete marker."""
        return cls(
            id=task.id,
            user_id=task.user_id,
            title=task.title,
            description=task.description,
            due_date=task.due_date,
            priority=task.priority,
            status=task.status,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class PaginationMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_page: int
    page_size: int
    total_items: int
    total_pages: int


class TaskListResponse(BaseModel):
    """Response for GET /api/v1/tasks."""

    model_config = ConfigDict(frozen=True)

    tasks: list[TaskResponse]
    pagination: PaginationMeta
