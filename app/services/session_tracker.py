"""
Streaming session bookkeeping
Records one row per playback attempt and counts views.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..crud.movie import movie as crud_movie
from ..models import Movie, StreamingSession, User

logger = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 500


@dataclass(frozen=True)
class ClientMeta:
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def get_client_ip(headers: Mapping[str, str], remote_addr: Optional[str]) -> Optional[str]:
    """
    Get client IP address, honouring proxy headers.
    """
    # Check for forwarded IP (when behind proxy)
    forwarded = headers.get("X-Forwarded-For")
    if forwarded and forwarded.strip():
        return forwarded.split(",")[0].strip()

    # Check for real IP
    real_ip = headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip

    # Fallback to direct client
    return remote_addr


def get_client_meta(request: Request) -> ClientMeta:
    remote_addr = request.client.host if request.client else None
    return ClientMeta(
        ip_address=get_client_ip(request.headers, remote_addr),
        user_agent=request.headers.get("User-Agent"),
    )


def generate_session_id() -> str:
    return str(uuid.uuid4())


class SessionTracker:
    """
    Creates, ends and queries StreamingSession rows.

    Each write commits on its own; a failed view-count bump leaves the
    session row in place.
    """

    def __init__(self, completion_ratio: float = settings.SESSION_COMPLETION_RATIO):
        self.completion_ratio = completion_ratio

    def start(
        self,
        db: Session,
        session_id: str,
        user: Optional[User],
        movie: Movie,
        client: ClientMeta,
    ) -> StreamingSession:
        """
        Persist a new session and increment the movie's view count.

        Both writes are attempted. A session insert failure is raised
        after the view count has been tried; a view count failure is
        only logged.
        """
        movie_id = movie.id
        session = StreamingSession(
            session_id=session_id,
            user_id=user.id if user else None,
            movie_id=movie_id,
            ip_address=client.ip_address,
            user_agent=(client.user_agent or "")[:USER_AGENT_MAX_LENGTH] or None,
            start_time=datetime.utcnow(),
            completed=False,
        )

        session_error = None
        try:
            db.add(session)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to record streaming session {session_id}: {e}")
            session_error = e

        self._count_view(db, movie_id)

        if session_error is not None:
            raise session_error

        logger.info(
            f"▶️ Session {session_id} started: movie={movie_id} "
            f"user={user.id if user else 'anonymous'} ip={client.ip_address}"
        )
        return session

    def _count_view(self, db: Session, movie_id: int) -> None:
        try:
            crud_movie.increment_view_count(db, id=movie_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to increment view count for movie {movie_id}: {e}")

    def end(
        self,
        db: Session,
        session_id: str,
        duration_watched: Optional[int],
    ) -> Optional[StreamingSession]:
        """
        Close a session. Unknown session ids are ignored and return None.

        The session is marked completed when at least completion_ratio of
        the movie's duration was watched. Movies without a known duration
        are never auto-completed.
        """
        session = db.query(StreamingSession).filter(
            StreamingSession.session_id == session_id
        ).first()

        if session is None:
            logger.info(f"Session {session_id} not found, nothing to end")
            return None

        now = datetime.utcnow()
        session.end_time = max(now, session.start_time) if session.start_time else now
        session.duration_watched = duration_watched
        session.completed = self.is_completed(duration_watched, session.movie.duration)

        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(
            f"⏹️ Session {session_id} ended: watched={duration_watched}s completed={session.completed}"
        )
        return session

    def is_completed(self, duration_watched: Optional[int], movie_duration: Optional[int]) -> bool:
        if duration_watched is None or not movie_duration:
            return False
        return duration_watched >= movie_duration * self.completion_ratio

    def list_active(self, db: Session, since: datetime) -> List[StreamingSession]:
        """Sessions started at or after `since` that have not been ended"""
        return (
            db.query(StreamingSession)
            .filter(
                StreamingSession.start_time >= since,
                StreamingSession.end_time.is_(None),
            )
            .order_by(StreamingSession.start_time.desc())
            .all()
        )

    def count_views(self, db: Session, movie_id: int) -> int:
        return db.query(StreamingSession).filter(
            StreamingSession.movie_id == movie_id
        ).count()


session_tracker = SessionTracker()
