"""
HTTP Range header parsing for video seeking

Only single ranges are supported. For a multi-range header like
bytes=0-99,200-299 the first segment is used and the rest ignored.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import MalformedRangeError

RANGE_PREFIX = "bytes="

_DIGITS = re.compile(r"^[0-9]+$")


class RangeKind(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    UNSATISFIABLE = "unsatisfiable"


@dataclass(frozen=True)
class RangeResult:
    kind: RangeKind
    file_size: int
    start: Optional[int] = None
    end: Optional[int] = None

    @property
    def content_length(self) -> int:
        if self.kind == RangeKind.PARTIAL:
            return self.end - self.start + 1
        if self.kind == RangeKind.FULL:
            return self.file_size
        return 0

    @property
    def content_range(self) -> Optional[str]:
        """Value for the Content-Range header, None for full responses"""
        if self.kind == RangeKind.PARTIAL:
            return f"bytes {self.start}-{self.end}/{self.file_size}"
        if self.kind == RangeKind.UNSATISFIABLE:
            return f"bytes */{self.file_size}"
        return None


def _parse_position(token: str, header: str) -> int:
    token = token.strip()
    if not _DIGITS.match(token):
        raise MalformedRangeError(f"Invalid range header: {header}")
    return int(token)


def parse_range(range_header: Optional[str], file_size: int) -> RangeResult:
    """
    Turn a Range header into a concrete byte interval.

    Returns a FULL result when there is no header or it is not a bytes
    range, UNSATISFIABLE when the interval falls outside the file.

    Raises:
        MalformedRangeError: the start (or a given end) is not a
            non-negative integer
    """
    if not range_header or not range_header.startswith(RANGE_PREFIX):
        return RangeResult(kind=RangeKind.FULL, file_size=file_size)

    spec = range_header[len(RANGE_PREFIX):].split(",", 1)[0]
    tokens = spec.split("-", 1)

    start = _parse_position(tokens[0], range_header)

    if len(tokens) > 1 and tokens[1].strip():
        end = _parse_position(tokens[1], range_header)
    else:
        end = file_size - 1

    if start >= file_size or end >= file_size or start > end:
        return RangeResult(kind=RangeKind.UNSATISFIABLE, file_size=file_size)

    return RangeResult(kind=RangeKind.PARTIAL, file_size=file_size, start=start, end=end)
