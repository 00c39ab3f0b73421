from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
import logging

from .config import settings

logger = logging.getLogger(__name__)


class StreamingError(Exception):
    """Base exception for the streaming subsystem"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(StreamingError):
    """Movie or video file does not exist"""


class SecurityError(StreamingError):
    """Resolved path escapes the video root. Never carries the path itself."""


class MalformedRangeError(StreamingError):
    """Range header is syntactically invalid"""


class UnsatisfiableRangeError(StreamingError):
    """Range is well formed but outside the file"""

    def __init__(self, file_size: int):
        super().__init__(f"Range not satisfiable for size {file_size}")
        self.file_size = file_size


class UnauthenticatedError(StreamingError):
    """Caller must be logged in"""


class InternalError(StreamingError):
    pass


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler. Returns 500 JSON and hides internal error details
    unless DEBUG is on.
    """
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        f"❌ Unhandled exception [Request ID: {request_id}]: {str(exc)}",
        exc_info=True
    )

    error_detail = str(exc) if settings.DEBUG else "Internal server error"

    return JSONResponse(
        status_code=500,
        content={
            "detail": error_detail,
            "request_id": request_id
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Log and forward FastAPI HTTPExceptions"""
    request_id = getattr(request.state, "request_id", "unknown")

    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} error [Request ID: {request_id}]: {exc.detail}")
    else:
        logger.info(f"HTTP {exc.status_code} [Request ID: {request_id}]: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "request_id": request_id},
        headers=getattr(exc, "headers", None),
    )


STREAMING_ERROR_STATUS = {
    NotFoundError: 404,
    SecurityError: 403,
    MalformedRangeError: 400,
    UnsatisfiableRangeError: 416,
    UnauthenticatedError: 401,
    InternalError: 500,
}


async def streaming_exception_handler(request: Request, exc: StreamingError):
    """
    Map streaming errors that escape an endpoint to their status code.
    Security and internal errors never expose their message.
    """
    request_id = getattr(request.state, "request_id", "unknown")
    status_code = STREAMING_ERROR_STATUS.get(type(exc), 500)

    if isinstance(exc, (SecurityError, InternalError)) or status_code == 500:
        logger.error(f"❌ {type(exc).__name__} [Request ID: {request_id}]: {exc.message}")
        detail = "Internal server error" if status_code == 500 else "Forbidden"
    else:
        detail = exc.message

    headers = None
    if isinstance(exc, UnauthenticatedError):
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(exc, UnsatisfiableRangeError):
        headers = {"Content-Range": f"bytes */{exc.file_size}"}

    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "request_id": request_id},
        headers=headers,
    )
