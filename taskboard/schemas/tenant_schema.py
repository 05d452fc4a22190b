import re
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, EmailStr, Field, field_validator

from taskboard.schemas.base import CamelModel
from taskboard.schemas.pagination import Pagination

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
MIN_PASSWORD_LENGTH = 8

TenantStatus = Literal["active", "suspended", "trial"]
SubscriptionPlan = Literal["free", "pro", "enterprise"]


def normalize_subdomain(value: str) -> str:
    value = value.strip().lower()
    if not (3 <= len(value) <= 63) or not SUBDOMAIN_PATTERN.match(value):
        raise ValueError(
            "Invalid subdomain format. Must be 3-63 alphanumeric characters with optional hyphens."
        )
    return value


def check_password_length(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError("Password must be at least 8 characters long")
    return value


class TenantRegistration(CamelModel):
    tenant_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("tenantName", "name", "tenant_name"),
        examples=["Acme"],
    )
    subdomain: str = Field(..., examples=["acme"])
    admin_email: EmailStr = Field(..., examples=["admin@acme.com"])
    admin_password: str = Field(..., examples=["Password1"])
    admin_full_name: str = Field(..., min_length=1, max_length=255, examples=["Acme Admin"])

    @field_validator("subdomain")
    @classmethod
    def validar_subdomain(cls, value: str) -> str:
        return normalize_subdomain(value)

    @field_validator("admin_password")
    @classmethod
    def validar_senha(cls, value: str) -> str:
        return check_password_length(value)

    @field_validator("admin_email")
    @classmethod
    def normalizar_email(cls, value: str) -> str:
        return value.lower()


class TenantUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[TenantStatus] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    max_users: Optional[int] = Field(default=None, ge=0)
    max_projects: Optional[int] = Field(default=None, ge=0)


class TenantSummary(CamelModel):
    id: UUID
    name: str
    subdomain: str
    status: str
    subscription_plan: str
    max_users: int
    max_projects: int


class TenantStats(CamelModel):
    total_users: int
    total_projects: int
    total_tasks: int


class TenantOut(TenantSummary):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TenantDetail(TenantOut):
    stats: TenantStats


class TenantListItem(CamelModel):
    id: UUID
    name: str
    subdomain: str
    status: str
    subscription_plan: str
    total_users: int
    total_projects: int
    created_at: Optional[datetime] = None


class TenantPagination(Pagination):
    total_tenants: int


class TenantPage(CamelModel):
    tenants: List[TenantListItem]
    pagination: TenantPagination
