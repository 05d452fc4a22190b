from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from taskboard.core.config import settings
from taskboard.core.errors import InvalidToken

pwd_context = CryptContext(schemes=["bcrypt", "sha256_crypt"], deprecated="auto")

SECRET_KEY = settings.auth.secret_key
JWT_ALGORITHM = settings.auth.algorithm
ACCESS_TOKEN_EXPIRE_HOURS = settings.auth.access_token_expire_hours


def access_token_ttl_seconds() -> int:
    return ACCESS_TOKEN_EXPIRE_HOURS * 3600


def create_access_token(user_id: UUID, tenant_id: Optional[UUID], role: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "exp": expire,
        "sub": str(user_id),
        "tenant_id": str(tenant_id) if tenant_id else None,  # None para super admin
        "role": role,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry, returning the raw claims."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidToken() from exc


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
