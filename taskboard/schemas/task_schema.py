from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import Field

from taskboard.schemas.base import CamelModel
from taskboard.schemas.pagination import Pagination

TaskStatus = Literal["todo", "in_progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255, examples=["Revisar contrato"])
    description: Optional[str] = None
    assigned_to: Optional[UUID] = None
    priority: TaskPriority = Field(default="medium", examples=["high"])
    due_date: Optional[date] = Field(default=None, examples=["2026-12-31"])


class TaskUpdate(CamelModel):
    """Partial update; an explicit ``null`` clears nullable fields."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[UUID] = None
    due_date: Optional[date] = None


class TaskStatusUpdate(CamelModel):
    status: TaskStatus


class TaskAssignee(CamelModel):
    id: UUID
    full_name: str
    email: str


class TaskOut(CamelModel):
    id: UUID
    project_id: UUID
    tenant_id: UUID
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    assigned_to: Optional[TaskAssignee] = Field(default=None, validation_alias="assignee")
    due_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TaskStatusOut(CamelModel):
    id: UUID
    status: str
    updated_at: Optional[datetime] = None


class TaskPage(CamelModel):
    tasks: List[TaskOut]
    total: int
    pagination: Pagination
