"""
JWT helpers.

Tokens are issued by the identity service; this module only needs to decode
them. `create_access_token` is kept for local tooling and tests.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from bursary.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(*, subject: dict[str, Any], expires_minutes: int | None = None) -> str:
    """Encode an access token carrying the given claims."""
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes

    to_encode = subject.copy()
    to_encode.update(
        {
            "exp": datetime.now(UTC) + timedelta(minutes=expires_minutes),
            "type": "access",
        }
    )
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a JWT.

    Returns:
        The claims dict, or None if the signature, algorithm, or expiry check fails.
    """
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.debug(f"Token decode failed: {e}")
        return None
