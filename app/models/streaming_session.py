from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from ..database import Base


class StreamingSession(Base):
    """
    One playback attempt, created when /stream/{movie_id} is hit.

    Lifecycle:
    - created with start_time at stream start
    - updated once when the client ends it (end_time, duration_watched, completed)
    - never deleted here; sessions without an end stay open
    """
    __tablename__ = "streaming_sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), unique=True, nullable=False, index=True)

    # Anonymous playback is allowed, so user_id is nullable
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)

    # Client metadata
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    start_time = Column(DateTime, default=datetime.utcnow, nullable=False)
    end_time = Column(DateTime, nullable=True)
    duration_watched = Column(Integer, nullable=True)  # seconds
    completed = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="streaming_sessions")
    movie = relationship("Movie", back_populates="streaming_sessions")

    __table_args__ = (
        Index('idx_streaming_active', 'start_time', 'end_time'),
    )

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def __repr__(self):
        return f"<StreamingSession(session_id='{self.session_id}', movie_id={self.movie_id})>"
