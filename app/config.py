from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # 🎯 Application
    APP_NAME: str = "Movie Stream API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False  # ⚠️ Must be False in production
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # 🌐 Server
    HOST: str = '0.0.0.0'
    PORT: int = 8000

    # 🗄️ Database
    DATABASE_URL: str  # must come from env
    DB_ECHO: bool = False

    # 🔒 CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    # 🎬 Video streaming
    VIDEO_DIR: str = '/var/www/movies/videos'  # set once at startup, never mutated
    STREAM_CHUNK_SIZE: int = 1024 * 1024  # 1MB reads
    STREAM_CACHE_MAX_AGE: int = 3600

    # 📊 Streaming sessions
    SESSION_COMPLETION_RATIO: float = 0.9
    ACTIVE_SESSION_WINDOW_MINUTES: int = 60

    # 📊 Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = 'ignore'

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(',')]


settings = Settings()
