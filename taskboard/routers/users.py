from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taskboard.core.auth_dependencies import get_auth_context
from taskboard.core.authorization import Action, AuthContext, Resource, ensure_allowed
from taskboard.core.database import get_db
from taskboard.core.errors import InvalidInput, NotFound
from taskboard.core.responses import envelope
from taskboard.models.user import ROLE_SUPER_ADMIN
from taskboard.schemas.pagination import PageRequest, build_pagination, pagination_params
from taskboard.schemas.user_schema import UserCreate, UserOut, UserPage, UserUpdate
from taskboard.services.audit import RequestAudit
from taskboard.services.subscription import ensure_user_capacity
from . import crud, validators

router = APIRouter(tags=["Users"])


@router.post("/tenants/{tenant_id}/users", status_code=status.HTTP_201_CREATED)
def create_user(
    tenant_id: UUID,
    payload: UserCreate,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    ensure_allowed(context, Action.USER_CREATE, Resource(tenant_id=tenant_id))

    # trava o tenant até o commit do insert
    ensure_user_capacity(db, tenant_id)
    validators.ensure_unique_email(db, tenant_id, payload.email)

    user = crud.create_user(db, tenant_id, payload)

    audit.log("CREATE_USER", "user", user.id, tenant_id=tenant_id, user_id=context.account_id)
    return envelope(UserOut.model_validate(user), "User created successfully")


@router.get("/tenants/{tenant_id}/users")
def list_users(
    tenant_id: UUID,
    search: Optional[str] = Query(default=None),
    role: Optional[Literal["user", "tenant_admin"]] = Query(default=None),
    page_request: PageRequest = Depends(pagination_params(default_limit=50)),
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    ensure_allowed(context, Action.USER_LIST, Resource(tenant_id=tenant_id))

    if not crud.get_tenant(db, tenant_id):
        raise NotFound("Tenant not found")

    filters = crud.user_filters(tenant_id, search, role)
    total = crud.count_users(db, filters)
    users = crud.list_users(db, filters, page_request)

    page = UserPage(
        users=[UserOut.model_validate(user) for user in users],
        total=total,
        pagination=build_pagination(page_request, total),
    )
    return envelope(page)


@router.put("/users/{user_id}")
def update_user(
    user_id: UUID,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    user = crud.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")

    changes = {field: value for field, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    ensure_allowed(
        context,
        Action.USER_UPDATE,
        Resource(tenant_id=user.tenant_id, owner_id=user.id, fields=frozenset(changes)),
    )
    validators.ensure_has_changes(changes)

    # conta sem tenant continua super_admin
    if user.tenant_id is None and changes.get("role", ROLE_SUPER_ADMIN) != ROLE_SUPER_ADMIN:
        raise InvalidInput("Super admin role cannot be changed")

    # reativar ocupa uma vaga do plano; a trava segue até o commit
    if changes.get("is_active") is True and not user.is_active and user.tenant_id is not None:
        ensure_user_capacity(db, user.tenant_id)

    user = crud.update_user(db, user, changes)

    audit.log("UPDATE_USER", "user", user.id, tenant_id=user.tenant_id, user_id=context.account_id)
    return envelope(UserOut.model_validate(user), "User updated successfully")


@router.delete("/users/{user_id}")
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    user = crud.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")

    ensure_allowed(context, Action.USER_DELETE, Resource(tenant_id=user.tenant_id, owner_id=user.id))

    tenant_id = user.tenant_id
    crud.delete_user(db, user)

    audit.log("DELETE_USER", "user", user_id, tenant_id=tenant_id, user_id=context.account_id)
    return envelope(message="User deleted successfully")
