from __future__ import annotations

import re
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from salon.config import settings

SESSION_COOKIE = "salon_session"


def phone_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VerifiedSession:
    token: str
    phone: str
    verified_at: datetime
    expires_at: datetime


class VerifiedSessionStore:
    """Remembers which clients recently passed SMS verification for a phone.

    Sessions are keyed by an opaque token handed to the client that entered
    the code, so another caller quoting the same phone gets no benefit. Only
    used to skip issuing a new code; never consulted to authorize access to
    booking data.
    """

    def __init__(
        self,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.ttl = ttl if ttl is not None else timedelta(hours=settings.session_ttl_hours)
        self._clock = clock
        self._sessions: dict[str, VerifiedSession] = {}

    def get(self, token: str | None) -> VerifiedSession | None:
        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.expires_at < self._clock():
            del self._sessions[token]
            return None
        return session

    def set(self, phone: str) -> VerifiedSession:
        now = self._clock()
        session = VerifiedSession(
            token=secrets.token_urlsafe(32),
            phone=phone_digits(phone),
            verified_at=now,
            expires_at=now + self.ttl,
        )
        self._sessions[session.token] = session
        return session

    def clear(self, token: str) -> None:
        self._sessions.pop(token, None)

    def clear_all(self) -> None:
        self._sessions.clear()

    def is_verified(self, token: str | None, phone: str) -> bool:
        session = self.get(token)
        return session is not None and session.phone == phone_digits(phone)

    def verified_phones(self) -> list[str]:
        return sorted(
            {s.phone for token, s in list(self._sessions.items()) if self.get(token) is not None}
        )


session_store = VerifiedSessionStore()
