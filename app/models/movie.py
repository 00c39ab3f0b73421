# app/models/movie.py
"""
Movie model for the streaming catalog
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..database import Base


class Movie(Base):
    """
    Catalog entry streamed by /stream/{movie_id}

    video_url is an opaque reference: an absolute URL, an upload path
    like /uploads/videos/x.mp4, or a bare filename. Only its final
    segment is used to locate the file under VIDEO_DIR.
    """
    __tablename__ = "movies"

    # ==================== PRIMARY KEY ====================
    id = Column(Integer, primary_key=True, index=True)

    # ==================== BASIC INFO ====================
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # ==================== MEDIA ====================
    video_url = Column(String(500), nullable=False)
    duration = Column(Integer, nullable=True)  # Duration in SECONDS

    # ==================== METADATA ====================
    view_count = Column(Integer, default=0, nullable=False, index=True)
    is_active = Column(Boolean, default=True, index=True)

    # ==================== TIMESTAMPS ====================
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    # ==================== RELATIONSHIPS ====================

    streaming_sessions = relationship(
        "StreamingSession",
        back_populates="movie",
        cascade="all, delete-orphan",
    )

    watch_history = relationship(
        "WatchHistory",
        back_populates="movie",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Movie(id={self.id}, title='{self.title}')>"
