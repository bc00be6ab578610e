from datetime import datetime

from salon.config import settings


def now_local() -> datetime:
    """Current wall-clock time in the business time zone (aware)."""
    return datetime.now(settings.tz)
