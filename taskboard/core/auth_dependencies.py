from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from shared import bind_request_log_context
from taskboard.core.authorization import AuthContext, is_consistent
from taskboard.core.database import get_db
from taskboard.core.errors import (
    AccessDenied,
    AccountInactive,
    AccountNotFound,
    InvalidToken,
    Unauthenticated,
)
from taskboard.core.security import decode_access_token
from taskboard.models.user import User

# auto_error=False: a ausência do header vira Unauthenticated com o nosso envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


class TokenPayload(BaseModel):
    sub: UUID
    tenant_id: Optional[UUID] = None
    role: str


def verify_credentials(db: Session, token: Optional[str]) -> User:
    """Resolve a bearer token to the active account it was issued for.

    The token only identifies the account; role and tenant are re-read from
    the store so that deactivation or role changes take effect immediately.
    """
    if not token:
        raise Unauthenticated()

    try:
        token_data = TokenPayload(**decode_access_token(token))
    except ValidationError as exc:
        raise InvalidToken() from exc

    user = db.get(User, token_data.sub)
    if user is None:
        raise AccountNotFound()

    # garante que o tenant do token bate com o tenant da conta
    if user.tenant_id != token_data.tenant_id:
        raise InvalidToken()

    if not user.is_active:
        raise AccountInactive()

    # role e tenant da conta precisam ser coerentes entre si
    if not is_consistent(AuthContext(account_id=user.id, tenant_id=user.tenant_id, role=user.role)):
        raise AccessDenied()

    return user


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    user = verify_credentials(db, token)
    bind_request_log_context(request, tenant_id=user.tenant_id, account_id=user.id, role=user.role)
    return user


def get_auth_context(user: User = Depends(get_current_user)) -> AuthContext:
    return AuthContext(account_id=user.id, tenant_id=user.tenant_id, role=user.role)
