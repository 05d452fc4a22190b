"""Data access for the routers.

Listings are split in two queries, a count and a page, built from the same
list of filter predicates so that ``total`` always matches the rows paged.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, joinedload

from taskboard.core.security import get_password_hash
from taskboard.models.project import Project
from taskboard.models.task import Task
from taskboard.models.tenant import Tenant
from taskboard.models.user import ROLE_TENANT_ADMIN, User
from taskboard.schemas.pagination import PageRequest
from taskboard.schemas.project_schema import ProjectCreate
from taskboard.schemas.task_schema import TaskCreate
from taskboard.schemas.tenant_schema import TenantRegistration
from taskboard.schemas.user_schema import UserCreate
from taskboard.services.subscription import DEFAULT_PLAN, limits_for_plan

Filters = List[Any]


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise


def _count(db: Session, column, filters: Filters) -> int:
    return db.query(func.count(column)).filter(*filters).scalar() or 0


def _page(query: Query, page_request: PageRequest) -> list:
    return query.offset(page_request.offset).limit(page_request.limit).all()


# ---------------------------------------------------------------- tenants


def get_tenant(db: Session, tenant_id: UUID) -> Optional[Tenant]:
    return db.query(Tenant).filter(Tenant.id == tenant_id).first()


def get_tenant_by_subdomain(db: Session, subdomain: str) -> Optional[Tenant]:
    return db.query(Tenant).filter(func.lower(Tenant.subdomain) == subdomain.lower()).first()


def create_tenant_with_admin(db: Session, payload: TenantRegistration) -> Tuple[Tenant, User]:
    """Tenant and first admin are committed together or not at all."""
    limits = limits_for_plan(DEFAULT_PLAN)
    tenant = Tenant(
        name=payload.tenant_name,
        subdomain=payload.subdomain,
        status="active",
        subscription_plan=DEFAULT_PLAN,
        max_users=limits.max_users,
        max_projects=limits.max_projects,
    )
    db.add(tenant)
    db.flush()

    admin = User(
        tenant_id=tenant.id,
        email=payload.admin_email,
        password_hash=get_password_hash(payload.admin_password),
        full_name=payload.admin_full_name,
        role=ROLE_TENANT_ADMIN,
        is_active=True,
    )
    db.add(admin)
    _commit(db)
    db.refresh(tenant)
    db.refresh(admin)
    return tenant, admin


def tenant_filters(status: Optional[str] = None, subscription_plan: Optional[str] = None) -> Filters:
    filters: Filters = []
    if status:
        filters.append(Tenant.status == status)
    if subscription_plan:
        filters.append(Tenant.subscription_plan == subscription_plan)
    return filters


def count_tenants(db: Session, filters: Filters) -> int:
    return _count(db, Tenant.id, filters)


def list_tenants(db: Session, filters: Filters, page_request: PageRequest) -> List[Tenant]:
    query = db.query(Tenant).filter(*filters).order_by(Tenant.created_at.desc(), Tenant.id)
    return _page(query, page_request)


def _grouped_counts(db: Session, column, ids: Iterable[UUID]) -> Dict[UUID, int]:
    ids = list(ids)
    if not ids:
        return {}
    rows = db.query(column, func.count()).filter(column.in_(ids)).group_by(column).all()
    return {key: total for key, total in rows}


def tenant_member_counts(db: Session, tenant_ids: Iterable[UUID]) -> Tuple[Dict[UUID, int], Dict[UUID, int]]:
    tenant_ids = list(tenant_ids)
    return (
        _grouped_counts(db, User.tenant_id, tenant_ids),
        _grouped_counts(db, Project.tenant_id, tenant_ids),
    )


def tenant_stats(db: Session, tenant_id: UUID) -> Dict[str, int]:
    return {
        "total_users": _count(db, User.id, [User.tenant_id == tenant_id]),
        "total_projects": _count(db, Project.id, [Project.tenant_id == tenant_id]),
        "total_tasks": _count(db, Task.id, [Task.tenant_id == tenant_id]),
    }


def update_tenant(db: Session, tenant: Tenant, changes: Dict[str, Any]) -> Tenant:
    plan = changes.get("subscription_plan")
    if plan is not None and plan != tenant.subscription_plan:
        # troca de plano sem limites explícitos aplica os limites do plano
        limits = limits_for_plan(plan)
        changes.setdefault("max_users", limits.max_users)
        changes.setdefault("max_projects", limits.max_projects)

    for field, value in changes.items():
        setattr(tenant, field, value)
    _commit(db)
    db.refresh(tenant)
    return tenant


# ------------------------------------------------------------------ users


def get_user(db: Session, user_id: UUID) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def find_login_account(db: Session, tenant_id: UUID, email: str) -> Optional[User]:
    user = db.query(User).filter(User.tenant_id == tenant_id, User.email == email).first()
    if user is not None:
        return user
    # super admin não pertence a tenant, mas entra por qualquer um
    return (
        db.query(User)
        .filter(User.tenant_id.is_(None), User.email == email, User.role == "super_admin")
        .first()
    )


def user_filters(tenant_id: UUID, search: Optional[str] = None, role: Optional[str] = None) -> Filters:
    filters: Filters = [User.tenant_id == tenant_id]
    if search:
        like_pattern = f"%{search}%"
        filters.append(User.full_name.ilike(like_pattern) | User.email.ilike(like_pattern))
    if role:
        filters.append(User.role == role)
    return filters


def count_users(db: Session, filters: Filters) -> int:
    return _count(db, User.id, filters)


def list_users(db: Session, filters: Filters, page_request: PageRequest) -> List[User]:
    query = db.query(User).filter(*filters).order_by(User.created_at.desc(), User.id)
    return _page(query, page_request)


def create_user(db: Session, tenant_id: UUID, payload: UserCreate) -> User:
    user = User(
        tenant_id=tenant_id,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        full_name=payload.full_name,
        role=payload.role,
        is_active=True,
    )
    db.add(user)
    _commit(db)
    db.refresh(user)
    return user


def update_user(db: Session, user: User, changes: Dict[str, Any]) -> User:
    for field, value in changes.items():
        setattr(user, field, value)
    _commit(db)
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    """Remove the account; its tasks stay, unassigned, and its projects lose the creator."""
    db.query(Task).filter(Task.assigned_to == user.id).update(
        {Task.assigned_to: None}, synchronize_session=False
    )
    db.query(Project).filter(Project.created_by == user.id).update(
        {Project.created_by: None}, synchronize_session=False
    )
    db.delete(user)
    _commit(db)


# --------------------------------------------------------------- projects


def get_project(db: Session, project_id: UUID) -> Optional[Project]:
    return db.query(Project).filter(Project.id == project_id).first()


def project_filters(
    tenant_id: Optional[UUID],
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> Filters:
    filters: Filters = []
    if tenant_id is not None:
        filters.append(Project.tenant_id == tenant_id)
    if status:
        filters.append(Project.status == status)
    if search:
        filters.append(Project.name.ilike(f"%{search}%"))
    return filters


def count_projects(db: Session, filters: Filters) -> int:
    return _count(db, Project.id, filters)


def list_projects(db: Session, filters: Filters, page_request: PageRequest) -> List[Project]:
    query = (
        db.query(Project)
        .options(joinedload(Project.creator))
        .filter(*filters)
        .order_by(Project.created_at.desc(), Project.id)
    )
    return _page(query, page_request)


def project_task_counts(db: Session, project_ids: Iterable[UUID]) -> Dict[UUID, Tuple[int, int]]:
    """``{project_id: (total, completed)}`` in a single grouped query."""
    project_ids = list(project_ids)
    if not project_ids:
        return {}
    completed = func.sum(case((Task.status == "completed", 1), else_=0))
    rows = (
        db.query(Task.project_id, func.count(Task.id), completed)
        .filter(Task.project_id.in_(project_ids))
        .group_by(Task.project_id)
        .all()
    )
    return {project_id: (total, int(done or 0)) for project_id, total, done in rows}


def create_project(db: Session, tenant_id: UUID, created_by: UUID, payload: ProjectCreate) -> Project:
    project = Project(
        tenant_id=tenant_id,
        name=payload.name,
        description=payload.description,
        status=payload.status,
        created_by=created_by,
    )
    db.add(project)
    _commit(db)
    db.refresh(project)
    return project


def update_project(db: Session, project: Project, changes: Dict[str, Any]) -> Project:
    for field, value in changes.items():
        setattr(project, field, value)
    _commit(db)
    db.refresh(project)
    return project


def delete_project(db: Session, project: Project) -> None:
    db.delete(project)
    _commit(db)


# ------------------------------------------------------------------ tasks


# high -> medium -> low
PRIORITY_ORDER = case(
    (Task.priority == "high", 1),
    (Task.priority == "medium", 2),
    (Task.priority == "low", 3),
    else_=4,
)


def get_task(db: Session, task_id: UUID) -> Optional[Task]:
    return db.query(Task).options(joinedload(Task.assignee)).filter(Task.id == task_id).first()


def task_filters(
    project_id: UUID,
    status: Optional[str] = None,
    assigned_to: Optional[UUID] = None,
    priority: Optional[str] = None,
    search: Optional[str] = None,
) -> Filters:
    filters: Filters = [Task.project_id == project_id]
    if status:
        filters.append(Task.status == status)
    if assigned_to:
        filters.append(Task.assigned_to == assigned_to)
    if priority:
        filters.append(Task.priority == priority)
    if search:
        filters.append(Task.title.ilike(f"%{search}%"))
    return filters


def count_tasks(db: Session, filters: Filters) -> int:
    return _count(db, Task.id, filters)


def list_tasks(db: Session, filters: Filters, page_request: PageRequest) -> List[Task]:
    query = (
        db.query(Task)
        .options(joinedload(Task.assignee))
        .filter(*filters)
        # prazo nulo vai para o fim em qualquer banco
        .order_by(PRIORITY_ORDER, Task.due_date.is_(None), Task.due_date.asc(), Task.created_at, Task.id)
    )
    return _page(query, page_request)


def create_task(db: Session, project: Project, payload: TaskCreate) -> Task:
    task = Task(
        project_id=project.id,
        tenant_id=project.tenant_id,
        title=payload.title,
        description=payload.description,
        status="todo",
        priority=payload.priority,
        assigned_to=payload.assigned_to,
        due_date=payload.due_date,
    )
    db.add(task)
    _commit(db)
    db.refresh(task)
    return task


def update_task(db: Session, task: Task, changes: Dict[str, Any]) -> Task:
    for field, value in changes.items():
        setattr(task, field, value)
    _commit(db)
    db.refresh(task)
    return task


def delete_task(db: Session, task: Task) -> None:
    db.delete(task)
    _commit(db)
