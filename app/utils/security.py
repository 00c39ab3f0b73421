# app/utils/security.py
from datetime import datetime, timedelta
from typing import Any, Optional
from jose import jwt, JWTError, ExpiredSignatureError
import logging
from ..config import settings

logger = logging.getLogger(__name__)

# ============================================================
# JWT Functions
# Tokens are issued by the auth service; this module verifies them
# and can mint tokens for internal tooling and tests.
# ============================================================

def create_access_token(
    subject: Any,
    expires_delta: Optional[timedelta] = None,
    role: Optional[str] = None
) -> str:
    """
    Create a new JWT access token with role support and expiration.

    Args:
        subject: User ID or identifier
        expires_delta: Custom expiration time
        role: User role (admin or client)

    Returns:
        JWT token string with expiration
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        'exp': expire,
        'sub': str(subject),
        'type': 'access',
        'iat': datetime.utcnow(),
        'role': role or 'client',
    }

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and validate JWT token.

    Returns:
        Token payload dictionary

    Raises:
        ExpiredSignatureError: If token has expired
        JWTError: If token is invalid
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise
    except JWTError as e:
        logger.error(f"Invalid token: {e}")
        raise
