"""
Sandboxed video path resolution
Maps a stored video reference onto a file inside VIDEO_DIR.
"""
import logging
import os
import re
from pathlib import Path, PurePosixPath, PureWindowsPath

from ..exceptions import NotFoundError, SecurityError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def extract_filename(video_ref: str) -> str:
    """
    Pull a bare filename out of a video reference.

    Handles full URLs (https://cdn/x/movie.mp4), upload paths
    (/uploads/videos/movie.mp4) and plain filenames.
    """
    if video_ref.startswith("http") or "/" in video_ref:
        return video_ref[video_ref.rfind("/") + 1:]
    return video_ref


def sanitize_filename(filename: str) -> str:
    """
    Neutralize traversal sequences while keeping the extension.

    Idempotent: a name made only of letters, digits, '.', '_' and '-'
    comes back unchanged.
    """
    if ".." in filename or "/" in filename or "\\" in filename:
        # Reduce to the last path segment under either separator convention
        filename = PureWindowsPath(PurePosixPath(filename).name).name

    return _UNSAFE_CHARS.sub("_", filename)


def is_path_secure(candidate: Path, root: Path) -> bool:
    """True when candidate normalizes to a path inside root."""
    normalized_file = Path(os.path.normpath(os.path.abspath(candidate)))
    normalized_root = Path(os.path.normpath(os.path.abspath(root)))
    return normalized_file == normalized_root or normalized_root in normalized_file.parents


class PathResolver:
    """Resolves movie video references against a fixed video root"""

    def __init__(self, video_root: str):
        self.video_root = Path(video_root)

    def resolve(self, video_ref: str) -> Path:
        """
        Return the absolute path of the video file for video_ref.

        Raises:
            SecurityError: the resolved path is outside the video root
            NotFoundError: no regular file exists at the resolved path
        """
        if not video_ref:
            raise NotFoundError("Movie has no video reference")

        filename = sanitize_filename(extract_filename(video_ref))
        if not filename:
            raise NotFoundError("Video file not found")

        candidate = Path(os.path.normpath(os.path.abspath(self.video_root / filename)))

        if not is_path_secure(candidate, self.video_root):
            raise SecurityError("Access to the requested video is forbidden")

        if not candidate.is_file():
            logger.warning(f"⚠️ Video file not found: {filename}")
            raise NotFoundError("Video file not found")

        return candidate
