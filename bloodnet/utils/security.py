from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from bloodnet.config import settings
from bloodnet.schemas.base_schema import UserRole
from bloodnet.utils.exceptions import AuthenticationError, PermissionDeniedError
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)

# Missing credentials are reported through AuthenticationError, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLES = (
    UserRole.BLOOD_BANK_ADMIN,
    UserRole.HOSPITAL_ADMIN,
    UserRole.SYSTEM_ADMIN,
)
REQUEST_CREATOR_ROLES = (
    UserRole.DOCTOR,
    UserRole.HOSPITAL_ADMIN,
    UserRole.SYSTEM_ADMIN,
)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as carried by an access token"""

    user_id: str
    role: UserRole

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles


class TokenManager:
    """Access token issue and verification"""

    @staticmethod
    def create_access_token(
        data: dict,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Create a JWT access token"""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> dict:
        """Decode and verify a JWT token"""
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError as e:
            raise AuthenticationError("Invalid or expired token") from e


def identity_from_token(token: str) -> Identity:
    payload = TokenManager.decode_token(token)

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Token does not contain user ID")

    try:
        role = UserRole(payload.get("role", UserRole.USER.value))
    except ValueError as e:
        raise AuthenticationError("Token carries an unknown role") from e

    return Identity(user_id=str(subject), role=role)


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Identity]:
    """Resolve the caller when a bearer token is sent; public routes accept None"""
    if credentials is None:
        return None
    return identity_from_token(credentials.credentials)


async def get_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    if identity is None:
        raise AuthenticationError("Not authenticated")
    return identity


def require_roles(*roles: UserRole):
    """Dependency factory admitting only callers holding one of ``roles``"""

    async def checker(identity: Identity = Depends(get_identity)) -> Identity:
        if not identity.has_role(*roles):
            logger.warning(
                f"Permission denied for user {identity.user_id} with role {identity.role.value}",
                extra={'extra_fields': {
                    'required_roles': [r.value for r in roles],
                    'user_role': identity.role.value,
                }}
            )
            raise PermissionDeniedError(
                "You do not have permission to perform this action"
            )
        return identity

    return checker
