from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskboard.core.auth_dependencies import get_current_user
from taskboard.core.database import get_db
from taskboard.core.errors import AccessDenied, AccountInactive, InvalidInput, NotFound, Unauthenticated
from taskboard.core.responses import envelope
from taskboard.core.security import access_token_ttl_seconds, create_access_token, verify_password
from taskboard.models.user import User
from taskboard.schemas.tenant_schema import TenantSummary
from taskboard.schemas.user_schema import CurrentUser, LoginRequest, LoginResult, SessionUser
from taskboard.services.audit import RequestAudit
from . import crud
from .tenants import register_tenant

router = APIRouter(prefix="/auth", tags=["Auth"])

# mesmo fluxo de POST /tenants, exposto também sob /auth
router.post("/register-tenant", status_code=status.HTTP_201_CREATED)(register_tenant)


@router.post("/login")
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    audit: RequestAudit = Depends(),
):
    if not payload.tenant_subdomain and not payload.tenant_id:
        raise InvalidInput("Email, password, and tenant subdomain or tenant ID are required")

    if payload.tenant_subdomain:
        tenant = crud.get_tenant_by_subdomain(db, payload.tenant_subdomain.strip())
    else:
        tenant = crud.get_tenant(db, payload.tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")

    if tenant.status != "active":
        raise AccessDenied("Tenant account is suspended")

    user = crud.find_login_account(db, tenant.id, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")

    if not user.is_active:
        raise AccountInactive()

    token = create_access_token(user_id=user.id, tenant_id=user.tenant_id, role=user.role)

    audit.log("LOGIN", "user", user.id, tenant_id=user.tenant_id, user_id=user.id)

    result = LoginResult(
        user=SessionUser.model_validate(user),
        token=token,
        expires_in=access_token_ttl_seconds(),
    )
    return envelope(result)


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    me = CurrentUser(
        id=current_user.id,
        email=current_user.email,
        full_name=current_user.full_name,
        role=current_user.role,
        is_active=current_user.is_active,
        tenant=TenantSummary.model_validate(current_user.tenant) if current_user.tenant else None,
    )
    return envelope(me)


@router.post("/logout")
def logout(
    current_user: User = Depends(get_current_user),
    audit: RequestAudit = Depends(),
):
    # JWT é stateless: o logout só fica registrado na auditoria
    audit.log("LOGOUT", "user", current_user.id, tenant_id=current_user.tenant_id, user_id=current_user.id)
    return envelope(message="Logged out successfully")
