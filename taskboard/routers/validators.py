from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskboard.core.errors import Conflict, InvalidInput
from taskboard.models.tenant import Tenant
from taskboard.models.user import User


def ensure_unique_subdomain(db: Session, subdomain: str) -> None:
    existente = db.query(Tenant.id).filter(func.lower(Tenant.subdomain) == subdomain.lower()).first()
    if existente:
        raise Conflict("Subdomain already exists")


def ensure_unique_email(db: Session, tenant_id: Optional[UUID], email: str, user_id: Optional[UUID] = None) -> None:
    # contas sem tenant (super admin) formam um escopo próprio
    tenant_clause = User.tenant_id.is_(None) if tenant_id is None else User.tenant_id == tenant_id
    query = db.query(User.id).filter(tenant_clause, func.lower(User.email) == email.lower())
    if user_id:
        query = query.filter(User.id != user_id)

    if query.first():
        raise Conflict("Email already exists in this tenant")


def ensure_assignee_in_tenant(db: Session, tenant_id: UUID, assignee_id: Optional[UUID]) -> None:
    if assignee_id is None:
        return
    assignee = db.query(User).filter(User.id == assignee_id).first()
    if assignee is None:
        raise InvalidInput("Assigned user not found")
    if assignee.tenant_id != tenant_id:
        raise InvalidInput("Assigned user does not belong to the same tenant")


def ensure_has_changes(changes: Dict[str, Any]) -> None:
    if not changes:
        raise InvalidInput("No valid fields to update")
