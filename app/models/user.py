"""
User model
Owned by the auth service; the streaming code only reads it.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class User(Base):
    """Platform account referenced by sessions and watch history"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Identity
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)

    # Role & Status
    is_active = Column(Boolean, default=True, index=True)
    is_superuser = Column(Boolean, default=False, index=True)

    created_at = Column(DateTime, server_default=func.now())

    # ==================== RELATIONSHIPS ====================

    watch_history = relationship("WatchHistory", back_populates="user", cascade="all, delete-orphan")
    streaming_sessions = relationship("StreamingSession", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
