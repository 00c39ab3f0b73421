# app/api/deps.py
from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, ExpiredSignatureError
import logging

from ..config import settings
from ..database import get_db
from ..exceptions import UnauthenticatedError
from ..utils.security import decode_access_token
from ..models.user import User
from ..services.session_tracker import ClientMeta, get_client_meta
from ..services.streaming import StreamingService

logger = logging.getLogger(__name__)

# Missing credentials are handled here so anonymous streaming stays possible
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(db: Session, token: str) -> User:
    """
    Resolve the user behind a bearer token.
    Expired and invalid tokens become 401, never 500.
    """
    try:
        payload = decode_access_token(token)
        user_id = payload.get("sub")

        if user_id is None:
            raise _unauthorized("Could not validate credentials")

        try:
            user_id = int(user_id)
        except (ValueError, TypeError):
            raise _unauthorized("Invalid token format")

    except ExpiredSignatureError:
        raise _unauthorized("Token has expired")

    except JWTError:
        raise _unauthorized("Could not validate credentials")

    user = db.query(User).filter(User.id == user_id).first()

    if user is None:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return user


def get_current_user(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> User:
    """
    Get current authenticated user from JWT token.
    """
    if credentials is None:
        raise UnauthenticatedError("User must be logged in")
    return _user_from_token(db, credentials.credentials)


def get_optional_user(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[User]:
    """
    Same as get_current_user but anonymous callers get None.
    A bad token is treated as anonymous as well.
    """
    if credentials is None:
        return None
    try:
        return _user_from_token(db, credentials.credentials)
    except HTTPException as e:
        logger.info(f"Treating caller as anonymous: {e.detail}")
        return None


def get_current_superuser(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Verify current user has superuser privileges.
    """
    if not current_user.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_user


# ==================== Request Context ====================

@dataclass
class RequestContext:
    """Per-request caller information passed explicitly into the streaming code"""
    user: Optional[User]
    client: ClientMeta
    request_id: str = "unknown"


def get_request_context(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
) -> RequestContext:
    return RequestContext(
        user=user,
        client=get_client_meta(request),
        request_id=getattr(request.state, "request_id", "unknown"),
    )


def get_video_root() -> str:
    return settings.VIDEO_DIR


def get_streaming_service(
    video_root: str = Depends(get_video_root),
) -> StreamingService:
    return StreamingService(video_root=video_root)
