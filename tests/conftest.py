import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from jose import jwt

TESTS_DIR = Path(__file__).resolve().parent

SECRET_KEY = os.getenv("SECRET_KEY", "ci-test-secret-with-at-least-32-characters")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS512")

# Garante que o app e os testes usem o mesmo segredo/algoritmo
os.environ.setdefault("SECRET_KEY", SECRET_KEY)
os.environ.setdefault("JWT_ALGORITHM", ALGORITHM)

os.environ["TASKBOARD_DATABASE_URL"] = f"sqlite:///{TESTS_DIR / 'test_taskboard.db'}"
os.environ["REDIS_URL"] = ""  # sem Redis: auditoria grava direto no banco
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["ENVIRONMENT"] = "development"

from taskboard.main import app  # noqa: E402
from taskboard.core.database import Base, SessionLocal, engine  # noqa: E402
from taskboard.core.security import get_password_hash  # noqa: E402
from taskboard.models import Project, Task, Tenant, User  # noqa: E402
from taskboard.services.subscription import limits_for_plan  # noqa: E402

DEFAULT_PASSWORD = "Password1"
# hash calculado uma vez: bcrypt é lento
_DEFAULT_PASSWORD_HASH = get_password_hash(DEFAULT_PASSWORD)


def make_token(user_id, tenant_id, role: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """
    Gera um JWT com as mesmas claims emitidas no login,
    para ser usado nos headers dos testes.
    """
    exp = datetime.now(timezone.utc) + expires_in
    payload = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id) if tenant_id else None,
        "role": role,
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token(user.id, user.tenant_id, user.role)}"}


def create_tenant(
    db,
    subdomain: str = "acme",
    plan: str = "free",
    status: str = "active",
    name: Optional[str] = None,
) -> Tenant:
    limits = limits_for_plan(plan)
    tenant = Tenant(
        name=name or subdomain.title(),
        subdomain=subdomain,
        status=status,
        subscription_plan=plan,
        max_users=limits.max_users,
        max_projects=limits.max_projects,
    )
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


def create_user(
    db,
    tenant: Optional[Tenant],
    email: str,
    role: str = "user",
    is_active: bool = True,
    full_name: Optional[str] = None,
) -> User:
    user = User(
        tenant_id=tenant.id if tenant else None,
        email=email,
        password_hash=_DEFAULT_PASSWORD_HASH,
        full_name=full_name or email.split("@")[0].title(),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_project(db, tenant: Tenant, creator: Optional[User], name: str = "Projeto") -> Project:
    project = Project(
        tenant_id=tenant.id,
        name=name,
        status="active",
        created_by=creator.id if creator else None,
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def create_task(db, project: Project, title: str = "Tarefa", **fields) -> Task:
    task = Task(project_id=project.id, tenant_id=project.tenant_id, title=title, **fields)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@pytest.fixture(autouse=True)
def prepare_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def acme(db_session):
    """Tenant ``acme`` (free) com um admin e dois usuários comuns."""
    tenant = create_tenant(db_session, "acme")
    admin = create_user(db_session, tenant, "admin@acme.com", role="tenant_admin")
    alice = create_user(db_session, tenant, "alice@acme.com")
    bob = create_user(db_session, tenant, "bob@acme.com")
    return {"tenant": tenant, "admin": admin, "alice": alice, "bob": bob}


@pytest.fixture
def globex(db_session):
    """Segundo tenant, para os cenários de isolamento."""
    tenant = create_tenant(db_session, "globex")
    admin = create_user(db_session, tenant, "admin@globex.com", role="tenant_admin")
    member = create_user(db_session, tenant, "member@globex.com")
    return {"tenant": tenant, "admin": admin, "member": member}


@pytest.fixture
def super_admin(db_session):
    return create_user(db_session, None, "root@platform.com", role="super_admin")
