from typing import Dict, Literal, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taskboard.core.auth_dependencies import get_auth_context
from taskboard.core.authorization import Action, AuthContext, Resource, ensure_allowed
from taskboard.core.database import get_db
from taskboard.core.errors import NotFound
from taskboard.core.responses import envelope
from taskboard.models.project import Project
from taskboard.schemas.pagination import PageRequest, build_pagination, pagination_params
from taskboard.schemas.project_schema import (
    ProjectCreate,
    ProjectCreator,
    ProjectDetail,
    ProjectListItem,
    ProjectOut,
    ProjectPage,
    ProjectUpdate,
)
from taskboard.services.audit import RequestAudit
from taskboard.services.subscription import ensure_project_capacity
from . import crud, validators

router = APIRouter(prefix="/projects", tags=["Projects"])

# nome e status são obrigatórios na tabela; só a descrição aceita null
NULLABLE_PROJECT_FIELDS = {"description"}


def _load_project(db: Session, project_id: UUID) -> Project:
    project = crud.get_project(db, project_id)
    if not project:
        raise NotFound("Project not found")
    return project


def _summarize(project: Project, counts: Dict[UUID, Tuple[int, int]], model=ProjectListItem):
    total, completed = counts.get(project.id, (0, 0))
    creator = project.creator
    return model(
        **ProjectOut.model_validate(project).model_dump(exclude={"created_by"}),
        created_by=ProjectCreator(
            id=project.created_by,
            full_name=creator.full_name if creator else None,
        ),
        task_count=total,
        completed_task_count=completed,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    # o tenant vem sempre do contexto autenticado, nunca do corpo
    ensure_allowed(context, Action.PROJECT_CREATE, Resource(tenant_id=context.tenant_id))

    ensure_project_capacity(db, context.tenant_id)
    project = crud.create_project(db, context.tenant_id, context.account_id, payload)

    audit.log("CREATE_PROJECT", "project", project.id, tenant_id=project.tenant_id, user_id=context.account_id)
    return envelope(ProjectOut.model_validate(project), "Project created successfully")


@router.get("")
def list_projects(
    project_status: Optional[Literal["active", "archived", "completed"]] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None),
    page_request: PageRequest = Depends(pagination_params(default_limit=20)),
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    ensure_allowed(context, Action.PROJECT_LIST, Resource(tenant_id=context.tenant_id))

    # filtro de tenant obrigatório para quem não é super admin
    scope = None if context.is_super_admin else context.tenant_id
    filters = crud.project_filters(scope, project_status, search)
    total = crud.count_projects(db, filters)
    projects = crud.list_projects(db, filters, page_request)
    counts = crud.project_task_counts(db, (p.id for p in projects))

    page = ProjectPage(
        projects=[_summarize(project, counts) for project in projects],
        total=total,
        pagination=build_pagination(page_request, total),
    )
    return envelope(page)


@router.get("/{project_id}")
def get_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    project = _load_project(db, project_id)
    ensure_allowed(context, Action.PROJECT_VIEW, Resource(tenant_id=project.tenant_id))

    counts = crud.project_task_counts(db, [project.id])
    return envelope(_summarize(project, counts, model=ProjectDetail))


@router.put("/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    project = _load_project(db, project_id)
    ensure_allowed(
        context,
        Action.PROJECT_UPDATE,
        Resource(tenant_id=project.tenant_id, owner_id=project.created_by),
    )

    changes = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_PROJECT_FIELDS
    }
    validators.ensure_has_changes(changes)
    project = crud.update_project(db, project, changes)

    audit.log("UPDATE_PROJECT", "project", project.id, tenant_id=project.tenant_id, user_id=context.account_id)
    return envelope(ProjectOut.model_validate(project), "Project updated successfully")


@router.delete("/{project_id}")
def delete_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    project = _load_project(db, project_id)
    ensure_allowed(
        context,
        Action.PROJECT_DELETE,
        Resource(tenant_id=project.tenant_id, owner_id=project.created_by),
    )

    tenant_id = project.tenant_id
    crud.delete_project(db, project)

    audit.log("DELETE_PROJECT", "project", project_id, tenant_id=tenant_id, user_id=context.account_id)
    return envelope(message="Project deleted successfully")
