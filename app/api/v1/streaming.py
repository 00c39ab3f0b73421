"""
Video Streaming Endpoints
Router: /api/v1/stream
"""
from datetime import datetime, timedelta
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session
import logging

from ...config import settings
from ...database import get_db
from ...crud.movie import movie as crud_movie
from ...exceptions import (
    MalformedRangeError,
    NotFoundError,
    SecurityError,
    UnsatisfiableRangeError,
)
from ...models.user import User
from ...schemas.streaming import (
    ActiveStreamsResponse,
    MessageResponse,
    MovieViewsResponse,
    SessionEndResponse,
    StreamSessionEnd,
    StreamingSessionResponse,
    VideoProgressUpdate,
)
from ...services.progress_store import progress_store
from ...services.session_tracker import session_tracker
from ...services.streaming import StreamingService
from ..deps import (
    RequestContext,
    get_current_superuser,
    get_current_user,
    get_request_context,
    get_streaming_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# ==================== Admin ====================
# Declared before /{movie_id} so the static paths win

@router.get("/admin/active", response_model=ActiveStreamsResponse)
def get_active_streams(
    current_user: User = Depends(get_current_superuser),
    db: Session = Depends(get_db),
):
    """
    Sessions started within ACTIVE_SESSION_WINDOW_MINUTES that were never ended
    """
    since = datetime.utcnow() - timedelta(minutes=settings.ACTIVE_SESSION_WINDOW_MINUTES)
    sessions = session_tracker.list_active(db, since)
    return {
        "sessions": [StreamingSessionResponse.model_validate(s) for s in sessions],
        "total": len(sessions),
        "since": since,
    }


@router.get("/admin/movies/{movie_id}/views", response_model=MovieViewsResponse)
def get_movie_views(
    movie_id: int,
    current_user: User = Depends(get_current_superuser),
    db: Session = Depends(get_db),
):
    """
    Session count for a movie next to its fast view counter
    """
    movie = crud_movie.get(db, id=movie_id)
    if not movie:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Movie not found"
        )

    return {
        "movie_id": movie_id,
        "total_sessions": session_tracker.count_views(db, movie_id),
        "view_count": crud_movie.get_view_count(db, id=movie_id),
    }


# ==================== Progress ====================

@router.post("/progress", response_model=MessageResponse)
def update_progress(
    progress_data: VideoProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Save resume position and completion flag for the caller
    """
    try:
        movie = crud_movie.get(db, id=progress_data.movie_id)
        if not movie:
            raise NotFoundError("Movie not found")

        progress_store.upsert(
            db,
            current_user,
            movie,
            position=progress_data.current_position,
            completed=progress_data.completed,
        )

        logger.info(f"✅ Progress updated for user {current_user.id} on movie {progress_data.movie_id}")
        return {"message": "Progress updated successfully"}

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"❌ Error updating watch progress: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to update progress"
        )


@router.post("/complete/{movie_id}", response_model=MessageResponse)
def mark_as_completed(
    movie_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Mark a movie as watched to the end
    """
    try:
        movie = crud_movie.get(db, id=movie_id)
        if not movie:
            raise NotFoundError("Movie not found")

        progress_store.mark_completed(db, current_user, movie)

        logger.info(f"✅ Movie {movie_id} marked as completed by user {current_user.id}")
        return {"message": "Movie marked as completed"}

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"❌ Error marking movie as completed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to mark movie as completed"
        )


# ==================== Sessions ====================

@router.post("/sessions/{session_id}/end", response_model=SessionEndResponse)
def end_stream_session(
    session_id: str,
    end_data: StreamSessionEnd,
    db: Session = Depends(get_db),
):
    """
    Close a streaming session. Unknown ids are accepted and ignored.
    A completed session also marks the movie completed in the owner's history.
    """
    session = session_tracker.end(db, session_id, end_data.duration_watched)
    if session is None:
        return {"ended": False}

    if session.completed and session.user is not None:
        try:
            progress_store.mark_completed(db, session.user, session.movie)
        except Exception as e:
            logger.error(f"⚠️ Could not record completion for session {session_id}: {e}")

    return {
        "ended": True,
        "session": StreamingSessionResponse.model_validate(session),
    }


# ==================== Streaming ====================

@router.get("/{movie_id}")
def stream_video(
    movie_id: int,
    range_header: Optional[str] = Header(None, alias="Range"),
    context: RequestContext = Depends(get_request_context),
    streaming: StreamingService = Depends(get_streaming_service),
    db: Session = Depends(get_db),
):
    """
    Stream a movie's video file, honouring single byte ranges

    - 200: whole file
    - 206: requested byte range
    - 403: video reference escapes the video directory
    - 404: unknown movie or missing file
    - 416: range outside the file
    - 400: malformed Range header
    """
    logger.info(f"Streaming request for movie {movie_id}")

    try:
        plan = streaming.prepare(
            db,
            movie_id,
            range_header,
            user=context.user,
            client=context.client,
        )
        return streaming.build_response(plan)

    except NotFoundError as e:
        logger.warning(f"⚠️ Streaming not possible for movie {movie_id}: {e.message}")
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Not found"})

    except SecurityError:
        logger.error(
            f"🚨 Security violation: video for movie {movie_id} resolves outside the video directory "
            f"(ip={context.client.ip_address})"
        )
        return Response(status_code=status.HTTP_403_FORBIDDEN)

    except UnsatisfiableRangeError as e:
        return Response(
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            headers={"Content-Range": f"bytes */{e.file_size}"},
        )

    except MalformedRangeError as e:
        logger.warning(f"⚠️ Malformed range for movie {movie_id}: {e.message}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Malformed Range header"})

    except Exception as e:
        logger.error(
            f"❌ Unexpected error streaming movie {movie_id} "
            f"(session {streaming.session_id or 'unassigned'}, request {context.request_id}): {e}",
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )
