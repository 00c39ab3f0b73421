"""
Video streaming orchestration

Per request: resolve movie -> resolve sandboxed path -> start session
(best-effort) -> evaluate Range -> build a 200 or 206 response.
Typed errors are raised for everything else and mapped to status codes
by the stream endpoint.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import magic
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..crud.movie import movie as crud_movie
from ..exceptions import InternalError, NotFoundError, UnsatisfiableRangeError
from ..models import Movie, User
from .path_resolver import PathResolver
from .range_parser import RangeKind, RangeResult, parse_range
from .session_tracker import ClientMeta, SessionTracker, generate_session_id, session_tracker

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"
SNIFF_BYTES = 2048


def guess_media_type(path: Path) -> str:
    """Sniff the Content-Type from the file header, not its extension"""
    try:
        with open(path, "rb") as f:
            head = f.read(SNIFF_BYTES)
        media_type = magic.from_buffer(head, mime=True)
    except (magic.MagicException, OSError) as e:
        logger.warning(f"⚠️ Could not detect media type of {path.name}: {e}")
        return DEFAULT_MEDIA_TYPE
    return media_type or DEFAULT_MEDIA_TYPE


def iter_file_range(path: Path, start: int, length: int, chunk_size: int) -> Iterator[bytes]:
    """
    Yield `length` bytes of the file starting at `start`.

    Every call opens its own handle and seeks, so concurrent readers of
    the same file never share a position.
    """
    remaining = length
    with open(path, "rb") as f:
        f.seek(start)
        while remaining > 0:
            chunk = f.read(min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk

    if remaining > 0:
        logger.warning(
            f"⚠️ {path.name} ended {remaining} bytes early at offset {start + length - remaining}, "
            f"response truncated"
        )


@dataclass
class StreamPlan:
    movie: Movie
    path: Path
    byte_range: RangeResult
    media_type: str
    session_id: Optional[str] = None


class StreamingService:
    """
    Request-scoped streaming coordinator.

    session_id is kept on the instance once assigned so the endpoint can
    log it if a later step fails.
    """

    def __init__(
        self,
        video_root: str,
        tracker: SessionTracker = session_tracker,
        chunk_size: int = settings.STREAM_CHUNK_SIZE,
        cache_max_age: int = settings.STREAM_CACHE_MAX_AGE,
    ):
        self.resolver = PathResolver(video_root)
        self.tracker = tracker
        self.chunk_size = chunk_size
        self.cache_max_age = cache_max_age
        self.session_id: Optional[str] = None

    def load_movie(self, db: Session, movie_id: int) -> Movie:
        movie = crud_movie.get(db, id=movie_id)
        if movie is None:
            raise NotFoundError(f"Movie {movie_id} not found")
        return movie

    def start_session(
        self,
        db: Session,
        movie: Movie,
        user: Optional[User],
        client: ClientMeta,
    ) -> Optional[str]:
        """
        Record the playback. Failures are logged and swallowed.
        """
        movie_id = movie.id
        session_id = generate_session_id()
        try:
            self.tracker.start(db, session_id, user, movie, client)
        except Exception as e:
            logger.error(
                f"⚠️ Session bookkeeping failed for movie {movie_id} "
                f"(session {session_id}): {e}"
            )
            return None
        self.session_id = session_id
        return session_id

    def prepare(
        self,
        db: Session,
        movie_id: int,
        range_header: Optional[str],
        user: Optional[User],
        client: ClientMeta,
    ) -> StreamPlan:
        """
        Run every step up to the response.

        Raises:
            NotFoundError: unknown movie or missing video file
            SecurityError: video reference escapes the video root
            MalformedRangeError: unparseable Range header
            UnsatisfiableRangeError: Range outside the file
        """
        movie = self.load_movie(db, movie_id)
        path = self.resolver.resolve(movie.video_url)

        session_id = self.start_session(db, movie, user, client)

        try:
            file_size = os.path.getsize(path)
        except FileNotFoundError:
            raise NotFoundError("Video file not found")
        except OSError as e:
            raise InternalError(f"Could not stat video for movie {movie_id}: {e}")

        byte_range = parse_range(range_header, file_size)
        if byte_range.kind == RangeKind.UNSATISFIABLE:
            logger.warning(f"Invalid range request for movie {movie_id}: {range_header}")
            raise UnsatisfiableRangeError(file_size)

        logger.info(
            f"🎬 Streaming movie {movie_id} ({file_size} bytes, {byte_range.kind.value})"
        )
        return StreamPlan(
            movie=movie,
            path=path,
            byte_range=byte_range,
            media_type=guess_media_type(path),
            session_id=session_id,
        )

    def build_response(self, plan: StreamPlan) -> StreamingResponse:
        byte_range = plan.byte_range
        headers = {
            "Content-Length": str(byte_range.content_length),
            "Accept-Ranges": "bytes",
            "Cache-Control": f"max-age={self.cache_max_age}",
        }
        if plan.session_id:
            headers["X-Stream-Session"] = plan.session_id

        if byte_range.kind == RangeKind.PARTIAL:
            headers["Content-Range"] = byte_range.content_range
            start = byte_range.start
            status_code = 206
        else:
            start = 0
            status_code = 200

        body = iter_file_range(plan.path, start, byte_range.content_length, self.chunk_size)
        return StreamingResponse(
            body,
            status_code=status_code,
            media_type=plan.media_type,
            headers=headers,
        )
