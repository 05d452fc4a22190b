from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from taskboard.schemas.base import CamelModel
from taskboard.schemas.pagination import Pagination
from taskboard.schemas.tenant_schema import TenantSummary, check_password_length

# super_admin nunca é atribuído pela API
AssignableRole = Literal["user", "tenant_admin"]


class UserCreate(CamelModel):
    email: EmailStr = Field(..., examples=["joao.silva@exemplo.com"])
    password: str = Field(..., examples=["senha1234"])
    full_name: str = Field(..., min_length=1, max_length=255, examples=["João Silva"])
    role: AssignableRole = Field(default="user", examples=["user"])

    @field_validator("password")
    @classmethod
    def validar_senha(cls, value: str) -> str:
        return check_password_length(value)

    @field_validator("email")
    @classmethod
    def normalizar_email(cls, value: str) -> str:
        return value.lower()


class UserUpdate(CamelModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    role: Optional[AssignableRole] = None
    is_active: Optional[bool] = None


class UserOut(CamelModel):
    id: UUID
    tenant_id: Optional[UUID] = None
    email: str
    full_name: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserPage(CamelModel):
    users: List[UserOut]
    total: int
    pagination: Pagination


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    tenant_subdomain: Optional[str] = None
    tenant_id: Optional[UUID] = None

    @field_validator("email")
    @classmethod
    def normalizar_email(cls, value: str) -> str:
        return value.lower()


class SessionUser(CamelModel):
    id: UUID
    email: str
    full_name: str
    role: str
    tenant_id: Optional[UUID] = None


class LoginResult(CamelModel):
    user: SessionUser
    token: str
    expires_in: int


class CurrentUser(CamelModel):
    id: UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    tenant: Optional[TenantSummary] = None


class RegistrationAdmin(CamelModel):
    id: UUID
    email: str
    full_name: str
    role: str


class RegistrationResult(CamelModel):
    tenant_id: UUID
    subdomain: str
    tenant: TenantSummary
    admin_user: RegistrationAdmin
