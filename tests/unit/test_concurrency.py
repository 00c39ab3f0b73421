import logging
import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.crud.movie import movie as crud_movie
from app.database import Base
from app.models import Movie
from app.services.streaming import iter_file_range

THREADS = 16


@pytest.fixture
def file_session_factory(tmp_path):
    # A file database so every thread gets its own connection
    engine = create_engine(
        f"sqlite:///{tmp_path / 'views.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


def test_concurrent_view_count_increments_are_not_lost(file_session_factory):
    with file_session_factory() as db:
        movie = Movie(title="Crowd Pleaser", video_url="crowd.mp4", view_count=5)
        db.add(movie)
        db.commit()
        movie_id = movie.id

    barrier = threading.Barrier(THREADS)
    errors = []

    def worker():
        barrier.wait()
        try:
            with file_session_factory() as db:
                crud_movie.increment_view_count(db, id=movie_id)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with file_session_factory() as db:
        assert crud_movie.get_view_count(db, id=movie_id) == 5 + THREADS


def test_concurrent_range_reads_do_not_interfere(video_file, video_bytes):
    ranges = [(i * 50, 50) for i in range(20)]
    results = {}

    def reader(start, length):
        results[start] = b"".join(iter_file_range(video_file, start, length, chunk_size=7))

    threads = [threading.Thread(target=reader, args=r) for r in ranges]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for start, length in ranges:
        assert results[start] == video_bytes[start:start + length]


def test_short_read_is_logged(video_file, caplog):
    caplog.set_level(logging.WARNING, logger="app.services.streaming")

    # The file is asked for more bytes than it holds, as when it shrinks mid-stream
    data = b"".join(iter_file_range(video_file, 900, 200, chunk_size=64))

    assert len(data) == 100
    assert "ended 100 bytes early" in caplog.text
