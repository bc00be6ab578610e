from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from salon import database, queries
from salon.config import settings
from salon.errors import NotFound, VerificationMismatch
from salon.services.activity import activity
from salon.services.session_store import SESSION_COOKIE, phone_digits, session_store
from salon.services.sms import send_verification_code
from salon.services.verification import generate_code, is_uuid, verify_code

logger = logging.getLogger(__name__)

router = APIRouter()


class VerifyRequest(BaseModel):
    phone: str
    code: str
    booking_id: str | None = Field(default=None, alias="bookingId")

    model_config = {"populate_by_name": True}


class ResendRequest(BaseModel):
    phone: str
    booking_id: str = Field(alias="bookingId")

    model_config = {"populate_by_name": True}


@router.post("/api/verify")
async def verify(body: VerifyRequest, response: Response):
    if not body.phone or not body.code:
        raise HTTPException(status_code=400, detail="Phone number and code are required")

    digits = phone_digits(body.phone)
    try:
        async with database.connection() as conn:
            booking = await verify_code(conn, digits, body.code.strip(), body.booking_id)
    except VerificationMismatch:
        activity.record("verification_failed", f"Verification failed for {digits}")
        raise

    session = session_store.set(digits)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session.token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        max_age=int(session_store.ttl.total_seconds()),
        path="/",
    )
    activity.record("verified", f"Booking verified: {booking['customer_name']} ({digits})")
    return {"success": True, "verified": True, "phone": digits}


@router.post("/api/verify/resend")
async def resend(body: ResendRequest):
    digits = phone_digits(body.phone)

    async with database.connection() as conn:
        booking = None
        if is_uuid(body.booking_id):
            booking = await queries.get_booking(conn, body.booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if booking["customer_phone"] != digits:
            raise VerificationMismatch("phone", "Phone number does not match booking")
        if booking["is_verified"]:
            return {"sent": False, "verified": True}

        code = generate_code()
        await queries.set_verification_code(conn, body.booking_id, code)

    sent = await send_verification_code(digits, code)
    activity.record("sms_sent" if sent else "sms_failed", f"Verification SMS re-sent to {digits}")
    return {"sent": sent, "verified": False}
