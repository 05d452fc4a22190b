import math
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taskboard.core.auth_dependencies import get_auth_context
from taskboard.core.authorization import Action, AuthContext, Resource, ensure_allowed
from taskboard.core.database import get_db
from taskboard.core.errors import NotFound
from taskboard.core.responses import envelope
from taskboard.schemas.pagination import PageRequest, pagination_params
from taskboard.schemas.tenant_schema import (
    TenantDetail,
    TenantListItem,
    TenantOut,
    TenantPage,
    TenantPagination,
    TenantRegistration,
    TenantStats,
    TenantSummary,
    TenantUpdate,
)
from taskboard.schemas.user_schema import RegistrationAdmin, RegistrationResult
from taskboard.services.audit import RequestAudit
from . import crud, validators

router = APIRouter(prefix="/tenants", tags=["Tenants"])


@router.post("", status_code=status.HTTP_201_CREATED)
def register_tenant(
    payload: TenantRegistration,
    db: Session = Depends(get_db),
    audit: RequestAudit = Depends(),
):
    validators.ensure_unique_subdomain(db, payload.subdomain)

    tenant, admin = crud.create_tenant_with_admin(db, payload)

    audit.log("CREATE_TENANT", "tenant", tenant.id, tenant_id=tenant.id, user_id=admin.id)

    result = RegistrationResult(
        tenant_id=tenant.id,
        subdomain=tenant.subdomain,
        tenant=TenantSummary.model_validate(tenant),
        admin_user=RegistrationAdmin.model_validate(admin),
    )
    return envelope(result, "Tenant registered successfully")


@router.get("")
def list_tenants(
    tenant_status: Optional[Literal["active", "suspended", "trial"]] = Query(default=None, alias="status"),
    subscription_plan: Optional[Literal["free", "pro", "enterprise"]] = Query(default=None, alias="subscriptionPlan"),
    page_request: PageRequest = Depends(pagination_params(default_limit=10)),
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    ensure_allowed(context, Action.TENANT_LIST)

    filters = crud.tenant_filters(tenant_status, subscription_plan)
    total = crud.count_tenants(db, filters)
    tenants = crud.list_tenants(db, filters, page_request)
    users_by_tenant, projects_by_tenant = crud.tenant_member_counts(db, (t.id for t in tenants))

    items = [
        TenantListItem(
            id=tenant.id,
            name=tenant.name,
            subdomain=tenant.subdomain,
            status=tenant.status,
            subscription_plan=tenant.subscription_plan,
            total_users=users_by_tenant.get(tenant.id, 0),
            total_projects=projects_by_tenant.get(tenant.id, 0),
            created_at=tenant.created_at,
        )
        for tenant in tenants
    ]
    pagination = TenantPagination(
        current_page=page_request.page,
        total_pages=math.ceil(total / page_request.limit),
        total_tenants=total,
        limit=page_request.limit,
    )
    return envelope(TenantPage(tenants=items, pagination=pagination))


@router.get("/{tenant_id}")
def get_tenant(
    tenant_id: UUID,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    ensure_allowed(context, Action.TENANT_VIEW, Resource(tenant_id=tenant_id))

    tenant = crud.get_tenant(db, tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")

    detail = TenantDetail(
        **TenantOut.model_validate(tenant).model_dump(),
        stats=TenantStats(**crud.tenant_stats(db, tenant.id)),
    )
    return envelope(detail)


@router.put("/{tenant_id}")
def update_tenant(
    tenant_id: UUID,
    payload: TenantUpdate,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
    audit: RequestAudit = Depends(),
):
    # colunas do tenant não aceitam nulo: null equivale a campo ausente
    changes = {field: value for field, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    ensure_allowed(context, Action.TENANT_UPDATE, Resource(tenant_id=tenant_id, fields=frozenset(changes)))

    tenant = crud.get_tenant(db, tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")

    validators.ensure_has_changes(changes)
    tenant = crud.update_tenant(db, tenant, changes)

    audit.log("UPDATE_TENANT", "tenant", tenant.id, tenant_id=tenant.id, user_id=context.account_id)
    return envelope(TenantOut.model_validate(tenant), "Tenant updated successfully")
