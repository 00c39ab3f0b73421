from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class WatchHistoryResponse(BaseModel):
    id: int
    user_id: int
    movie_id: int
    watch_position_seconds: Optional[int] = None
    completed: Optional[bool] = None
    watched_at: datetime
    last_updated: datetime

    class Config:
        from_attributes = True
