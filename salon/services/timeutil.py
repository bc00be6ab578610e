from __future__ import annotations

import re

from salon.errors import FormatError

_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})(?::(\d{2}))?", re.ASCII)


def to_minutes(hhmm: str) -> int:
    """Parse ``HH:MM`` (or ``HH:MM:SS``, seconds ignored) into minutes since midnight.

    ``24:00`` is accepted as the end-of-day marker.
    """
    match = _TIME_RE.fullmatch(hhmm.strip()) if isinstance(hhmm, str) else None
    if match is None:
        raise FormatError(f"Invalid time {hhmm!r}, expected HH:MM")

    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if minutes > 59 or seconds > 59 or hours > 24 or (hours == 24 and minutes + seconds):
        raise FormatError(f"Time out of range: {hhmm!r}")
    return hours * 60 + minutes


def to_hhmm(minutes: int) -> str:
    """Format non-negative minutes since midnight as zero-padded ``HH:MM``."""
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"
