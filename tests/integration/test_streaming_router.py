import pytest
from httpx import AsyncClient

from app.crud.movie import movie as crud_movie
from app.models import StreamingSession
from app.schemas.movie import MovieCreate
from app.services.session_tracker import session_tracker


def sessions(db):
    db.expire_all()
    return db.query(StreamingSession).all()


@pytest.mark.asyncio
async def test_full_stream(client: AsyncClient, db, movie, video_bytes):
    response = await client.get(f"/api/v1/stream/{movie.id}")

    assert response.status_code == 200
    assert response.headers["content-length"] == str(len(video_bytes))
    assert response.headers["accept-ranges"] == "bytes"
    assert response.headers["content-type"] == "video/mp4"
    assert response.headers["cache-control"] == "max-age=3600"
    assert "content-range" not in response.headers
    assert response.content == video_bytes


@pytest.mark.asyncio
async def test_content_type_sniffed_without_extension(client: AsyncClient, db, video_dir, video_bytes):
    (video_dir / "trailer").write_bytes(video_bytes)
    movie = crud_movie.create(db, obj_in=MovieCreate(title="Trailer", video_url="trailer"))

    response = await client.get(f"/api/v1/stream/{movie.id}")

    assert response.status_code == 200
    assert response.headers["content-type"] == "video/mp4"


@pytest.mark.asyncio
async def test_content_type_ignores_misleading_extension(client: AsyncClient, db, video_dir):
    (video_dir / "notes.mp4").write_bytes(b"plain notes, not a movie\n" * 4)
    movie = crud_movie.create(db, obj_in=MovieCreate(title="Not A Video", video_url="notes.mp4"))

    response = await client.get(f"/api/v1/stream/{movie.id}")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


@pytest.mark.asyncio
async def test_partial_stream(client: AsyncClient, db, movie, video_bytes):
    response = await client.get(
        f"/api/v1/stream/{movie.id}",
        headers={"Range": "bytes=200-299"},
    )

    assert response.status_code == 206
    assert response.headers["content-range"] == "bytes 200-299/1000"
    assert response.headers["content-length"] == "100"
    assert response.headers["accept-ranges"] == "bytes"
    assert response.content == video_bytes[200:300]


@pytest.mark.asyncio
async def test_open_ended_range(client: AsyncClient, db, movie, video_bytes):
    response = await client.get(
        f"/api/v1/stream/{movie.id}",
        headers={"Range": "bytes=900-"},
    )

    assert response.status_code == 206
    assert response.headers["content-range"] == "bytes 900-999/1000"
    assert response.content == video_bytes[900:]


@pytest.mark.asyncio
async def test_unsatisfiable_range(client: AsyncClient, db, movie):
    response = await client.get(
        f"/api/v1/stream/{movie.id}",
        headers={"Range": "bytes=999-1000"},
    )

    assert response.status_code == 416
    assert response.headers["content-range"] == "bytes */1000"
    assert response.content == b""


@pytest.mark.asyncio
async def test_malformed_range_is_bad_request(client: AsyncClient, db, movie):
    response = await client.get(
        f"/api/v1/stream/{movie.id}",
        headers={"Range": "bytes=abc-10"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_movie(client: AsyncClient, db):
    response = await client.get("/api/v1/stream/9999")
    assert response.status_code == 404
    assert sessions(db) == []


@pytest.mark.asyncio
async def test_missing_video_file(client: AsyncClient, db, video_dir):
    movie = crud_movie.create(db, obj_in=MovieCreate(title="Lost Reel", video_url="lost.mp4"))

    response = await client.get(f"/api/v1/stream/{movie.id}")

    assert response.status_code == 404
    assert str(video_dir) not in response.text


@pytest.mark.asyncio
async def test_traversal_is_forbidden(client: AsyncClient, db):
    movie = crud_movie.create(db, obj_in=MovieCreate(title="Escape", video_url=".."))

    response = await client.get(f"/api/v1/stream/{movie.id}")

    assert response.status_code == 403
    assert response.content == b""


@pytest.mark.asyncio
async def test_stream_records_anonymous_session(client: AsyncClient, db, movie):
    response = await client.get(
        f"/api/v1/stream/{movie.id}",
        headers={"User-Agent": "TestPlayer/1.0", "X-Forwarded-For": "198.51.100.9, 10.0.0.1"},
    )
    assert response.status_code == 200

    recorded = sessions(db)
    assert len(recorded) == 1
    assert recorded[0].session_id == response.headers["x-stream-session"]
    assert recorded[0].user_id is None
    assert recorded[0].ip_address == "198.51.100.9"
    assert recorded[0].user_agent == "TestPlayer/1.0"

    db.refresh(movie)
    assert movie.view_count == 1


@pytest.mark.asyncio
async def test_stream_records_authenticated_user(client: AsyncClient, db, movie, user, auth_headers):
    response = await client.get(f"/api/v1/stream/{movie.id}", headers=auth_headers)
    assert response.status_code == 200
    assert sessions(db)[0].user_id == user.id


@pytest.mark.asyncio
async def test_invalid_token_streams_anonymously(client: AsyncClient, db, movie):
    response = await client.get(
        f"/api/v1/stream/{movie.id}",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 200
    assert sessions(db)[0].user_id is None


@pytest.mark.asyncio
async def test_session_failure_does_not_break_stream(client: AsyncClient, db, movie, video_bytes, monkeypatch):
    def broken_start(*args, **kwargs):
        raise RuntimeError("session store down")

    monkeypatch.setattr(session_tracker, "start", broken_start)

    response = await client.get(f"/api/v1/stream/{movie.id}")

    assert response.status_code == 200
    assert "x-stream-session" not in response.headers
    assert response.content == video_bytes


@pytest.mark.asyncio
async def test_each_stream_counts_a_view(client: AsyncClient, db, movie):
    for _ in range(3):
        await client.get(f"/api/v1/stream/{movie.id}", headers={"Range": "bytes=0-1"})

    db.refresh(movie)
    assert movie.view_count == 3
    assert session_tracker.count_views(db, movie.id) == 3


@pytest.mark.asyncio
async def test_end_session_marks_completion(client: AsyncClient, db, movie, user, auth_headers):
    stream = await client.get(f"/api/v1/stream/{movie.id}", headers=auth_headers)
    session_id = stream.headers["x-stream-session"]

    response = await client.post(
        f"/api/v1/stream/sessions/{session_id}/end",
        json={"durationWatched": 95},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["ended"] is True
    assert data["session"]["completed"] is True
    assert data["session"]["duration_watched"] == 95

    history = await client.get("/api/v1/users/history", headers=auth_headers)
    assert history.status_code == 200
    assert history.json()[0]["movie_id"] == movie.id
    assert history.json()[0]["completed"] is True


@pytest.mark.asyncio
async def test_end_unknown_session(client: AsyncClient, db):
    response = await client.post(
        "/api/v1/stream/sessions/nope/end",
        json={"durationWatched": 10},
    )
    assert response.status_code == 200
    assert response.json() == {"ended": False, "session": None}
    assert sessions(db) == []
