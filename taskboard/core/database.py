from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from taskboard.core.config import settings

engine = create_engine(
    settings.database.url,
    future=True,
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


if engine.dialect.name == "sqlite":
    # SQLite só respeita ON DELETE CASCADE / SET NULL com foreign_keys ligado
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db():
    # fechar a sessão descarta qualquer transação não confirmada
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
