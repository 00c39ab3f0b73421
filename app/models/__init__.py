from app.database import Base
from app.models.user import User
from app.models.movie import Movie
from app.models.streaming_session import StreamingSession
from app.models.watch_history import WatchHistory

# This ensures all models are registered with Base.metadata
__all__ = ["Base", "User", "Movie", "StreamingSession", "WatchHistory"]
