from __future__ import annotations


class BookingError(Exception):
    """Base class for errors raised by the booking services."""


class FormatError(BookingError, ValueError):
    """A time or date string could not be parsed."""


class SlotConflict(BookingError):
    """The requested slot is no longer free."""


class VerificationMismatch(BookingError):
    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class NotFound(BookingError):
    pass


class UpstreamFailure(BookingError):
    """The data store or the SMS gateway failed."""
