"""Subscription plan ceilings and the quota guard used before creations."""

from typing import Dict, NamedTuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskboard.core.errors import LimitExceeded, NotFound
from taskboard.models.project import Project
from taskboard.models.tenant import Tenant
from taskboard.models.user import User


class PlanLimits(NamedTuple):
    max_users: int
    max_projects: int


PLAN_LIMITS: Dict[str, PlanLimits] = {
    "free": PlanLimits(max_users=5, max_projects=3),
    "pro": PlanLimits(max_users=25, max_projects=15),
    "enterprise": PlanLimits(max_users=100, max_projects=50),
}

DEFAULT_PLAN = "free"


def limits_for_plan(plan: str) -> PlanLimits:
    return PLAN_LIMITS[plan]


def lock_tenant(db: Session, tenant_id: UUID) -> Tenant:
    """Load the tenant with ``SELECT ... FOR UPDATE``.

    The lock is held until the caller's transaction ends, so concurrent
    creations for the same tenant run their count and insert one at a time.
    """
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).with_for_update().first()
    if tenant is None:
        raise NotFound("Tenant not found")
    return tenant


def ensure_user_capacity(db: Session, tenant_id: UUID) -> Tenant:
    tenant = lock_tenant(db, tenant_id)
    active_users = (
        db.query(func.count(User.id))
        .filter(User.tenant_id == tenant_id, User.is_active.is_(True))
        .scalar()
    )
    if active_users >= tenant.max_users:
        raise LimitExceeded("Subscription limit reached. Maximum users limit exceeded.")
    return tenant


def ensure_project_capacity(db: Session, tenant_id: UUID) -> Tenant:
    tenant = lock_tenant(db, tenant_id)
    projects = db.query(func.count(Project.id)).filter(Project.tenant_id == tenant_id).scalar()
    if projects >= tenant.max_projects:
        raise LimitExceeded("Subscription limit reached. Maximum projects limit exceeded.")
    return tenant
