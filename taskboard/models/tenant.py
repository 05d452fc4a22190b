import uuid
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from taskboard.core.database import Base

TENANT_STATUSES = ("active", "suspended", "trial")
SUBSCRIPTION_PLANS = ("free", "pro", "enterprise")


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    # sempre minúsculo; a unicidade é garantida sem diferenciar maiúsculas
    subdomain = Column(String(63), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="active")
    subscription_plan = Column(String(20), nullable=False, default="free")
    max_users = Column(Integer, nullable=False)
    max_projects = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)
    projects = relationship("Project", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)
