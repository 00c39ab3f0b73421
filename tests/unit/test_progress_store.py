import pytest

from app.models import WatchHistory
from app.services.progress_store import ProgressStore


@pytest.fixture
def store():
    return ProgressStore()


def test_upsert_creates_record(db, store, user, movie):
    history = store.upsert(db, user, movie, position=30, completed=False)

    assert history.user_id == user.id
    assert history.movie_id == movie.id
    assert history.watch_position_seconds == 30
    assert history.completed is False
    assert history.watched_at == history.last_updated


def test_second_upsert_updates_in_place(db, store, user, movie):
    first = store.upsert(db, user, movie, position=30, completed=False)
    first_updated = first.last_updated
    first_watched = first.watched_at

    second = store.upsert(db, user, movie, position=75, completed=True)

    assert db.query(WatchHistory).count() == 1
    assert second.id == first.id
    assert second.watch_position_seconds == 75
    assert second.completed is True
    assert second.last_updated > first_updated
    assert second.watched_at == first_watched


def test_upsert_overwrites_with_none(db, store, user, movie):
    store.upsert(db, user, movie, position=40, completed=False)
    history = store.upsert(db, user, movie, position=None, completed=None)

    assert history.watch_position_seconds is None
    assert history.completed is None


def test_position_is_clamped_to_duration(db, store, user, movie):
    history = store.upsert(db, user, movie, position=5000, completed=False)
    assert history.watch_position_seconds == movie.duration


def test_position_is_kept_when_duration_unknown(db, store, user, movie):
    movie.duration = None
    db.commit()
    history = store.upsert(db, user, movie, position=5000, completed=False)
    assert history.watch_position_seconds == 5000


def test_negative_position_is_clamped_to_zero(store, movie):
    assert store.clamp_position(-5, movie) == 0


def test_mark_completed(db, store, user, movie):
    store.upsert(db, user, movie, position=40, completed=False)
    history = store.mark_completed(db, user, movie)

    assert history.completed is True
    assert history.watch_position_seconds is None


def test_get_history_one_row_per_movie(db, store, user, movie):
    from app.crud.movie import movie as crud_movie
    from app.schemas.movie import MovieCreate

    other = crud_movie.create(db, obj_in=MovieCreate(title="Sequel", video_url="sequel.mp4"))

    store.upsert(db, user, movie, position=10, completed=False)
    store.upsert(db, user, movie, position=20, completed=False)
    store.upsert(db, user, other, position=5, completed=False)

    history = store.get_history(db, user)
    assert sorted(h.movie_id for h in history) == sorted([movie.id, other.id])
