import asyncio
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from shared import (
    EventConsumer,
    RequestContextLogMiddleware,
    cleanup_consumer,
    configure_cors,
    configure_logging,
    create_event_publisher,
    create_health_router,
    init_database,
)
from taskboard import __version__
from taskboard.core.config import SERVICE_NAME, settings
from taskboard.core.database import Base, SessionLocal, engine
from taskboard.core.errors import register_error_handlers
from taskboard.models import AuditLog, Project, Task, Tenant, User  # noqa: F401
from taskboard.routers import auth, projects, tasks, tenants, users
from taskboard.services.audit import AUDIT_EVENT_TYPE, AuditRecorder, build_audit_handler
from taskboard.services.seed import seed_demo_data

tags_metadata = [
    {"name": "Auth", "description": "Registro de tenants, login e sessão do usuário."},
    {"name": "Tenants", "description": "Dados do tenant, plano de assinatura e limites."},
    {"name": "Users", "description": "Contas e papéis dentro de um tenant."},
    {"name": "Projects", "description": "Projetos do tenant."},
    {"name": "Tasks", "description": "Tarefas dos projetos, responsáveis e status."},
]

_ROOT_PATH = os.getenv("APP_ROOT_PATH", "")
_LOGGER = configure_logging(SERVICE_NAME)

# sem Redis o recorder grava direto no banco
_EVENT_PUBLISHER = create_event_publisher(settings.redis.url, settings.redis.stream)
_AUDIT_RECORDER = AuditRecorder(SessionLocal, publisher=_EVENT_PUBLISHER)

_audit_consumer: Optional[EventConsumer] = None
_audit_consumer_task: Optional[asyncio.Task] = None


def _seed() -> None:
    db = SessionLocal()
    try:
        seed_demo_data(db)
    finally:
        db.close()


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    global _audit_consumer, _audit_consumer_task

    _LOGGER.info("service_starting", environment=settings.environment)
    await init_database(service_name=SERVICE_NAME, metadata=Base.metadata, engine=engine)

    if settings.seed_demo_data:
        await asyncio.to_thread(_seed)

    if _EVENT_PUBLISHER is not None:
        _audit_consumer = EventConsumer(
            redis_url=settings.redis.url,
            stream_name=settings.redis.stream,
            group_name=f"{SERVICE_NAME}-audit",
            consumer_name=f"{SERVICE_NAME}-audit-worker-1",
        )
        _audit_consumer.register_handler(AUDIT_EVENT_TYPE, build_audit_handler(_AUDIT_RECORDER))
        _audit_consumer_task = asyncio.create_task(_audit_consumer.start())
        _LOGGER.info("audit_consumer_started", stream=settings.redis.stream)

    yield

    await cleanup_consumer(_audit_consumer, _audit_consumer_task, _LOGGER)
    _audit_consumer, _audit_consumer_task = None, None
    if _EVENT_PUBLISHER is not None:
        _EVENT_PUBLISHER.close()
    _LOGGER.info("service_stopped")


app = FastAPI(
    title="Taskboard API",
    version=__version__,
    description="API multi-tenant de projetos e tarefas, com isolamento por tenant e papéis.",
    openapi_tags=tags_metadata,
    root_path=_ROOT_PATH,
    lifespan=app_lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.config = settings
app.state.event_publisher = _EVENT_PUBLISHER
app.state.audit_recorder = _AUDIT_RECORDER

app.add_middleware(RequestContextLogMiddleware, logger=_LOGGER)
configure_cors(app, settings.environment)
register_error_handlers(app)


def custom_openapi_schema():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=tags_metadata,
    )
    schema["openapi"] = "3.0.3"
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi_schema

health_router = create_health_router(
    service_name=SERVICE_NAME,
    database_engine=engine,
    redis_client=settings.redis.url or None,
)
app.include_router(health_router)

app.include_router(auth.router)
app.include_router(tenants.router)
app.include_router(users.router)
app.include_router(projects.router)
app.include_router(tasks.router)


@app.get("/")
def root():
    return {
        "service": SERVICE_NAME,
        "status": "ok",
        "docs_url": "/docs",
        "config": {
            "environment": settings.environment,
            "audit_stream": settings.redis.stream if _EVENT_PUBLISHER else None,
        },
    }
