"""
Per-user watch history: resume position and completion flag
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Movie, User, WatchHistory

logger = logging.getLogger(__name__)


class ProgressStore:
    """
    Upserts WatchHistory rows keyed by (user, movie).

    Writes are last-write-wins: both position and completed are replaced
    on every call, including with None.
    """

    def clamp_position(self, position: Optional[int], movie: Movie) -> Optional[int]:
        """Keep a reported position within [0, movie.duration]"""
        if position is None:
            return None
        position = max(0, position)
        if movie.duration:
            position = min(position, movie.duration)
        return position

    def get(self, db: Session, user: User, movie: Movie) -> Optional[WatchHistory]:
        return db.query(WatchHistory).filter(
            WatchHistory.user_id == user.id,
            WatchHistory.movie_id == movie.id
        ).first()

    def upsert(
        self,
        db: Session,
        user: User,
        movie: Movie,
        position: Optional[int],
        completed: Optional[bool],
    ) -> WatchHistory:
        position = self.clamp_position(position, movie)
        now = datetime.utcnow()

        try:
            history = self.get(db, user, movie)

            if history:
                # Successive updates must always move last_updated forward
                if history.last_updated and now <= history.last_updated:
                    now = history.last_updated + timedelta(microseconds=1)
                history.watch_position_seconds = position
                history.completed = completed
                history.last_updated = now
            else:
                history = WatchHistory(
                    user_id=user.id,
                    movie_id=movie.id,
                    watch_position_seconds=position,
                    completed=completed,
                    watched_at=now,
                    last_updated=now,
                )
                db.add(history)

            db.commit()
            db.refresh(history)

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to save watch history user={user.id} movie={movie.id}: {e}")
            raise

        logger.info(
            f"✅ Watch history saved: user={user.id} movie={movie.id} "
            f"position={position} completed={completed}"
        )
        return history

    def mark_completed(self, db: Session, user: User, movie: Movie) -> WatchHistory:
        return self.upsert(db, user, movie, position=None, completed=True)

    def get_history(self, db: Session, user: User) -> List[WatchHistory]:
        return db.query(WatchHistory).filter(WatchHistory.user_id == user.id).all()


progress_store = ProgressStore()
