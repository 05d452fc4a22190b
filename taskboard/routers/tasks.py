from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taskboard.core.auth_dependencies import get_auth_context
from taskboard.core.authorization import Action, AuthContext, Resource, ensure_allowed
from taskboard.core.database import get_db
from taskboard.core.errors import NotFound
from taskboard.core.responses import envelope
from taskboard.models.project import Project
from taskboard.models.task import Task
from taskboard.schemas.pagination import PageRequest, build_pagination, pagination_params
from taskboard.schemas.task_schema import TaskCreate, TaskOut, TaskPage, TaskStatusOut, TaskStatusUpdate, TaskUpdate
from taskboard.services.audit import RequestAudit
from . import crud, validators

router = APIRouter(tags=["Tasks"])

NULLABLE_TASK_FIELDS = {"description", "assigned_to", "due_date"}


def _load_project(db: Session, project_id: UUID) -> Project:
    project = crud.get_project(db, project_id)
    if not project:
        raise NotFound("Project not found")
    return project


def _load_task(db: Session, task_id: UUID) -> Task:
    task = crud.get_task(db, task_id)
    if not task:
        raise NotFound("Task not found")
    return task


@router.post("/projects/{project_id}/tasks", status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: UUID,
    payload: TaskCreate,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    project = _load_project(db, project_id)
    ensure_allowed(context, Action.TASK_CREATE, Resource(tenant_id=project.tenant_id))

    validators.ensure_assignee_in_tenant(db, project.tenant_id, payload.assigned_to)
    task = crud.create_task(db, project, payload)

    audit.log("CREATE_TASK", "task", task.id, tenant_id=task.tenant_id, user_id=context.account_id)
    return envelope(TaskOut.model_validate(task), "Task created successfully")


@router.get("/projects/{project_id}/tasks")
def list_tasks(
    project_id: UUID,
    task_status: Optional[Literal["todo", "in_progress", "completed"]] = Query(default=None, alias="status"),
    assigned_to: Optional[UUID] = Query(default=None, alias="assignedTo"),
    priority: Optional[Literal["low", "medium", "high"]] = Query(default=None),
    search: Optional[str] = Query(default=None),
    page_request: PageRequest = Depends(pagination_params(default_limit=50)),
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    project = _load_project(db, project_id)
    ensure_allowed(context, Action.TASK_LIST, Resource(tenant_id=project.tenant_id))

    filters = crud.task_filters(project.id, task_status, assigned_to, priority, search)
    total = crud.count_tasks(db, filters)
    tasks = crud.list_tasks(db, filters, page_request)

    page = TaskPage(
        tasks=[TaskOut.model_validate(task) for task in tasks],
        total=total,
        pagination=build_pagination(page_request, total),
    )
    return envelope(page)


@router.put("/tasks/{task_id}")
def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    task = _load_task(db, task_id)
    ensure_allowed(context, Action.TASK_UPDATE, Resource(tenant_id=task.tenant_id))

    # null explícito limpa campos opcionais; campos ausentes não mudam
    changes = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_TASK_FIELDS
    }
    validators.ensure_has_changes(changes)
    if changes.get("assigned_to") is not None:
        validators.ensure_assignee_in_tenant(db, task.tenant_id, changes["assigned_to"])

    task = crud.update_task(db, task, changes)

    audit.log("UPDATE_TASK", "task", task.id, tenant_id=task.tenant_id, user_id=context.account_id)
    return envelope(TaskOut.model_validate(task), "Task updated successfully")


@router.patch("/tasks/{task_id}/status")
def update_task_status(
    task_id: UUID,
    payload: TaskStatusUpdate,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    task = _load_task(db, task_id)
    ensure_allowed(context, Action.TASK_UPDATE, Resource(tenant_id=task.tenant_id))

    # mesmo status repetido não é erro
    if task.status != payload.status:
        task = crud.update_task(db, task, {"status": payload.status})
        audit.log("UPDATE_TASK", "task", task.id, tenant_id=task.tenant_id, user_id=context.account_id)

    return envelope(TaskStatusOut.model_validate(task))


@router.delete("/tasks/{task_id}")
def delete_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    task = _load_task(db, task_id)
    ensure_allowed(context, Action.TASK_DELETE, Resource(tenant_id=task.tenant_id))

    tenant_id = task.tenant_id
    crud.delete_task(db, task)

    audit.log("DELETE_TASK", "task", task_id, tenant_id=tenant_id, user_id=context.account_id)
    return envelope(message="Task deleted successfully")
