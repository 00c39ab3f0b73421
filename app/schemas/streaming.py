from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


# ==================== Requests ====================

class VideoProgressUpdate(BaseModel):
    """Body of POST /stream/progress, camelCase on the wire"""
    movie_id: int = Field(..., alias="movieId")
    current_position: Optional[int] = Field(None, alias="currentPosition", ge=0)  # seconds
    total_duration: Optional[int] = Field(None, alias="totalDuration", ge=0)  # seconds
    completed: Optional[bool] = None

    class Config:
        populate_by_name = True


class StreamSessionEnd(BaseModel):
    duration_watched: Optional[int] = Field(None, alias="durationWatched", ge=0)  # seconds

    class Config:
        populate_by_name = True


# ==================== Responses ====================

class MessageResponse(BaseModel):
    message: str


class StreamingSessionResponse(BaseModel):
    session_id: str
    user_id: Optional[int] = None
    movie_id: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_watched: Optional[int] = None
    completed: bool

    class Config:
        from_attributes = True


class ActiveStreamsResponse(BaseModel):
    sessions: List[StreamingSessionResponse]
    total: int
    since: datetime


class SessionEndResponse(BaseModel):
    ended: bool
    session: Optional[StreamingSessionResponse] = None


class MovieViewsResponse(BaseModel):
    movie_id: int
    total_sessions: int
    view_count: int
