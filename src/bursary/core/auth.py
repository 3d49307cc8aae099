"""
Authentication and Authorization Module

FastAPI dependencies that resolve the calling user from a bearer token and
enforce the student/admin role split. Tokens are issued elsewhere; this
module only validates them via security.decode_token.

SECURITY NOTE:
- Development mode auth bypass is ONLY enabled when PYTHON_ENV=development
- Production and staging environments never accept development tokens
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bursary.core.config import settings
from bursary.core.security import decode_token

logger = logging.getLogger(__name__)

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass
class CurrentUser:
    """
    The authenticated caller, populated from JWT claims.

    Attributes:
        id: User's unique identifier
        email: User's email address
        role: 'student' or 'admin'
        name: Display name (optional)
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, email={self.email}, role={self.role})"


def _is_dev_mode_safe() -> bool:
    """
    Check if development token shortcuts may be enabled.

    Requires settings.is_development, not settings.is_production, and a
    PYTHON_ENV that is neither production nor staging.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_USERS = {
    "dev-admin-token": CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000001"),
        email="admin@bursary.dev",
        role=ROLE_ADMIN,
        name="Development Admin",
    ),
    "dev-student-token": CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000002"),
        email="student@bursary.dev",
        role=ROLE_STUDENT,
        name="Development Student",
    ),
}


def _dev_user_from_token(token: str) -> CurrentUser | None:
    """Resolve development tokens: fixed names or '<role>:<uuid>'."""
    if token in _DEV_USERS:
        return _DEV_USERS[token]

    role, _, raw_id = token.partition(":")
    if role not in (ROLE_STUDENT, ROLE_ADMIN) or not raw_id:
        return None
    try:
        user_id = UUID(raw_id)
    except ValueError:
        return None
    return CurrentUser(
        id=user_id,
        email=f"{role}-{str(user_id)[:8]}@bursary.dev",
        role=role,
        name=f"Test {role.title()}",
    )


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> CurrentUser:
    """
    Validate a JWT and extract the caller.

    Raises:
        HTTPException 401: If the token is invalid, expired, or lacks claims
    """
    if _DEVELOPMENT_MODE:
        dev_user = _dev_user_from_token(token)
        if dev_user is not None:
            logger.debug("Development mode: Using test token")
            return dev_user

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("AUTHENTICATION_FAILED", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        return CurrentUser(
            id=UUID(user_id_str),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            name=payload.get("name"),
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """FastAPI dependency returning the authenticated caller of any role."""
    return await _validate_jwt_token(credentials.credentials)


def _require_role(user: CurrentUser, role: str) -> CurrentUser:
    if user.role != role:
        logger.warning(
            f"Access denied: User {user.id} ({user.email}) has role '{user.role}', "
            f"but '{role}' is required"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "AUTHORIZATION_DENIED",
                "message": f"The '{role}' role is required for this endpoint.",
            },
        )
    return user


async def get_current_student(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    FastAPI dependency for student endpoints.

    Usage:
        @router.get("/student/profile")
        async def get_profile(student: CurrentUser = Depends(get_current_student)):
            ...
    """
    return _require_role(user, ROLE_STUDENT)


async def get_current_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """FastAPI dependency for admin endpoints."""
    user = _require_role(user, ROLE_ADMIN)
    logger.debug(f"Authenticated admin: {user.id} ({user.email})")
    return user


__all__ = [
    "CurrentUser",
    "ROLE_ADMIN",
    "ROLE_STUDENT",
    "get_current_user",
    "get_current_student",
    "get_current_admin",
]
