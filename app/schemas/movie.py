from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class MovieBase(BaseModel):
    title: str
    description: Optional[str] = None
    video_url: str
    duration: Optional[int] = None
    is_active: bool = True

class MovieCreate(MovieBase):
    pass

class Movie(MovieBase):
    id: int
    view_count: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
