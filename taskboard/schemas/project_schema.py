from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import Field

from taskboard.schemas.base import CamelModel
from taskboard.schemas.pagination import Pagination

ProjectStatus = Literal["active", "archived", "completed"]


class ProjectCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Website Redesign"])
    description: Optional[str] = Field(default=None, examples=["Nova versão do site institucional"])
    status: ProjectStatus = Field(default="active", examples=["active"])


class ProjectUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None


class ProjectCreator(CamelModel):
    id: Optional[UUID] = None
    full_name: Optional[str] = None


class ProjectOut(CamelModel):
    id: UUID
    tenant_id: UUID
    name: str
    description: Optional[str] = None
    status: str
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectListItem(CamelModel):
    id: UUID
    tenant_id: UUID
    name: str
    description: Optional[str] = None
    status: str
    created_by: ProjectCreator
    task_count: int
    completed_task_count: int
    created_at: Optional[datetime] = None


class ProjectPage(CamelModel):
    projects: List[ProjectListItem]
    total: int
    pagination: Pagination


class ProjectDetail(ProjectListItem):
    updated_at: Optional[datetime] = None
