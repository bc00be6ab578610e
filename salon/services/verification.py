from __future__ import annotations

import logging
import secrets
import uuid

import asyncpg

from salon import queries
from salon.errors import NotFound, VerificationMismatch
from salon.services.session_store import phone_digits

logger = logging.getLogger(__name__)


def generate_code() -> str:
    return f"{secrets.randbelow(10_000):04d}"


def is_valid_phone(phone: str) -> bool:
    """Israeli mobile numbers: 9-10 digits starting with 05."""
    digits = phone_digits(phone)
    return 9 <= len(digits) <= 10 and digits.startswith("05")


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


async def verify_code(
    conn: asyncpg.Connection,
    phone: str,
    code: str,
    booking_id: str | None = None,
) -> asyncpg.Record:
    """Move a booking from unverified to verified when *code* matches.

    With *booking_id* the phone must match that booking before the code is
    compared. A booking that is already verified still requires its code and
    is returned unchanged. Without it the most recent unverified booking for
    the phone holding *code* is verified.

    Raises:
        NotFound: *booking_id* does not exist.
        VerificationMismatch: wrong phone (``reason="phone"``) or wrong code
            (``reason="code"``).
    """
    digits = phone_digits(phone)

    if booking_id:
        booking = await queries.get_booking(conn, booking_id) if is_uuid(booking_id) else None
        if booking is None:
            raise NotFound("Booking not found")
        if booking["customer_phone"] != digits:
            raise VerificationMismatch("phone", "Phone number does not match booking")
        if booking["verification_code"] is None or not secrets.compare_digest(
            booking["verification_code"].encode(), code.encode()
        ):
            logger.info("Verification failed for booking %s: wrong code", booking_id)
            raise VerificationMismatch("code", "Invalid verification code")
    else:
        booking = await queries.find_unverified_booking(conn, digits, code)
        if booking is None:
            logger.info("Verification failed for %s: no booking with that code", digits)
            raise VerificationMismatch("code", "Invalid verification code")

    if not booking["is_verified"]:
        await queries.mark_verified(conn, str(booking["id"]))
    return booking
