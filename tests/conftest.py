import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.api.deps import get_video_root
from app.crud.movie import movie as crud_movie
from app.database import Base, SessionLocal, engine
from app.models import User
from app.schemas.movie import MovieCreate
from app.utils.security import create_access_token

VIDEO_SIZE = 1000

# ISO base media "ftyp" box, enough for libmagic to report video/mp4
MP4_HEADER = b"\x00\x00\x00\x18ftypisom\x00\x00\x02\x00isomiso2"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def video_dir(tmp_path):
    path = tmp_path / "videos"
    path.mkdir()
    return path


@pytest.fixture
def video_bytes():
    return MP4_HEADER + bytes(i % 256 for i in range(len(MP4_HEADER), VIDEO_SIZE))


@pytest.fixture
def video_file(video_dir, video_bytes):
    path = video_dir / "movie.mp4"
    path.write_bytes(video_bytes)
    return path


@pytest.fixture
def movie(db, video_file):
    return crud_movie.create(db, obj_in=MovieCreate(
        title="The Long Take",
        video_url="/uploads/videos/movie.mp4",
        duration=100,
    ))


@pytest.fixture
def user(db):
    user = User(email="viewer@example.com", full_name="Viewer")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def superuser(db):
    admin = User(email="admin@example.com", full_name="Admin", is_superuser=True)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def admin_headers(superuser):
    return {"Authorization": f"Bearer {create_access_token(superuser.id, role='admin')}"}


@pytest_asyncio.fixture
async def client(db, video_dir):
    app.dependency_overrides[get_video_root] = lambda: str(video_dir)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
