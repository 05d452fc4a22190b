"""Demo data for local environments (``SEED_DEMO_DATA=true``)."""

from datetime import date

import structlog
from sqlalchemy.orm import Session

from taskboard.core.security import get_password_hash
from taskboard.models.project import Project
from taskboard.models.task import Task
from taskboard.models.tenant import Tenant
from taskboard.models.user import ROLE_SUPER_ADMIN, ROLE_TENANT_ADMIN, ROLE_USER, User
from taskboard.services.subscription import limits_for_plan

logger = structlog.get_logger(__name__)

SUPER_ADMIN_EMAIL = "superadmin@system.com"
SUPER_ADMIN_PASSWORD = "Admin@123"
DEMO_SUBDOMAIN = "demo"
DEMO_ADMIN_PASSWORD = "Demo@123"
DEMO_USER_PASSWORD = "User@123"

# (título, descrição, status, prioridade, responsável, prazo, projeto)
DEMO_TASKS = [
    ("Design homepage", "Create homepage design mockup", "todo", "high", "user1@demo.com", date(2024, 12, 31), "Project Alpha"),
    ("Implement API", "Build REST API endpoints", "in_progress", "medium", "user2@demo.com", date(2024, 12, 25), "Project Alpha"),
    ("Write tests", "Create unit and integration tests", "todo", "low", None, None, "Project Alpha"),
    ("Setup database", "Configure database schema", "completed", "high", "user1@demo.com", date(2024, 12, 20), "Project Beta"),
    ("Deploy application", "Deploy to production server", "in_progress", "medium", "user2@demo.com", date(2024, 12, 30), "Project Beta"),
]


def _ensure_super_admin(db: Session) -> bool:
    exists = (
        db.query(User)
        .filter(User.tenant_id.is_(None), User.email == SUPER_ADMIN_EMAIL)
        .first()
    )
    if exists:
        return False
    db.add(
        User(
            tenant_id=None,
            email=SUPER_ADMIN_EMAIL,
            password_hash=get_password_hash(SUPER_ADMIN_PASSWORD),
            full_name="Super Admin",
            role=ROLE_SUPER_ADMIN,
            is_active=True,
        )
    )
    return True


def _create_demo_tenant(db: Session) -> None:
    limits = limits_for_plan("pro")
    tenant = Tenant(
        name="Demo Company",
        subdomain=DEMO_SUBDOMAIN,
        status="active",
        subscription_plan="pro",
        max_users=limits.max_users,
        max_projects=limits.max_projects,
    )
    db.add(tenant)
    db.flush()

    admin = User(
        tenant_id=tenant.id,
        email="admin@demo.com",
        password_hash=get_password_hash(DEMO_ADMIN_PASSWORD),
        full_name="Demo Admin",
        role=ROLE_TENANT_ADMIN,
    )
    user_hash = get_password_hash(DEMO_USER_PASSWORD)
    members = {
        "user1@demo.com": User(tenant_id=tenant.id, email="user1@demo.com", password_hash=user_hash, full_name="User One", role=ROLE_USER),
        "user2@demo.com": User(tenant_id=tenant.id, email="user2@demo.com", password_hash=user_hash, full_name="User Two", role=ROLE_USER),
    }
    db.add_all([admin, *members.values()])
    db.flush()

    projects = {
        name: Project(tenant_id=tenant.id, name=name, description=description, status="active", created_by=admin.id)
        for name, description in (("Project Alpha", "First demo project"), ("Project Beta", "Second demo project"))
    }
    db.add_all(projects.values())
    db.flush()

    for title, description, status, priority, assignee, due_date, project_name in DEMO_TASKS:
        db.add(
            Task(
                project_id=projects[project_name].id,
                tenant_id=tenant.id,
                title=title,
                description=description,
                status=status,
                priority=priority,
                assigned_to=members[assignee].id if assignee else None,
                due_date=due_date,
            )
        )


def seed_demo_data(db: Session) -> bool:
    """Insert the demo accounts, tenant, projects and tasks once.

    Returns ``True`` when anything was created. Safe to call on every start.
    """
    created = _ensure_super_admin(db)

    if db.query(Tenant).filter(Tenant.subdomain == DEMO_SUBDOMAIN).first() is None:
        _create_demo_tenant(db)
        created = True

    if created:
        db.commit()
        logger.info("demo_data_seeded", subdomain=DEMO_SUBDOMAIN)
    return created
