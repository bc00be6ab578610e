from __future__ import annotations

import logging
import time as _time
from datetime import date

from fastapi import APIRouter, Cookie, HTTPException, Request
from pydantic import BaseModel

from salon import clock, database, queries
from salon.errors import SlotConflict
from salon.services.activity import activity
from salon.services.availability import ensure_slot_free
from salon.services.catalog import get_service
from salon.services.session_store import SESSION_COOKIE, phone_digits, session_store
from salon.services.sms import send_verification_code
from salon.services.timeutil import to_hhmm, to_minutes
from salon.services.verification import generate_code, is_valid_phone

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------------------------------------------------------------------------
# Simple in-memory sliding-window rate limiter (per IP, 10 req / 60s)
# ---------------------------------------------------------------------------
_RATE_WINDOW = 60
_RATE_LIMIT = 10
_request_log: dict[str, list[float]] = {}


def _check_rate_limit(ip: str) -> None:
    now = _time.time()
    window_start = now - _RATE_WINDOW
    for stale in [key for key, log in _request_log.items() if log[-1] <= window_start]:
        del _request_log[stale]

    recent = [t for t in _request_log.get(ip, []) if t > window_start]
    if len(recent) >= _RATE_LIMIT:
        _request_log[ip] = recent
        raise HTTPException(status_code=429, detail="Too many requests - try again later")
    recent.append(now)
    _request_log[ip] = recent


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------
class BookingRequest(BaseModel):
    service_id: str
    date: date
    start_time: str
    customer_name: str
    customer_phone: str


class BookingResponse(BaseModel):
    booking_id: str
    cancellation_token: str
    status: str
    service_title: str
    date: date
    start_time: str
    end_time: str
    is_verified: bool
    verification_pending: bool
    sms_sent: bool | None = None


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------
@router.post("/api/book", response_model=BookingResponse)
async def book(
    body: BookingRequest,
    request: Request,
    session_token: str | None = Cookie(None, alias=SESSION_COOKIE),
):
    client_ip = request.client.host if request.client else "unknown"
    _check_rate_limit(client_ip)

    service = get_service(body.service_id)

    name = body.customer_name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="customer_name is required")
    if not is_valid_phone(body.customer_phone):
        raise HTTPException(status_code=400, detail="Invalid phone number")
    phone = phone_digits(body.customer_phone)

    start = to_minutes(body.start_time)
    start_time = to_hhmm(start)
    end_time = to_hhmm(start + service.duration_minutes)

    now = clock.now_local()
    if body.date < now.date() or (
        body.date == now.date() and start < now.hour * 60 + now.minute
    ):
        raise HTTPException(status_code=400, detail="Selected time is in the past")

    already_verified = session_store.is_verified(session_token, phone)
    code = None if already_verified else generate_code()

    async with database.connection() as conn:
        # Re-check the slot against fresh data to prevent double booking
        day = await queries.fetch_day(conn, body.date)
        try:
            ensure_slot_free(body.date, start_time, end_time, **day)
        except SlotConflict as exc:
            logger.info("Rejected %s %s-%s: %s", body.date, start_time, end_time, exc)
            raise

        # TODO: take a per-date advisory lock (or an exclusion constraint on
        # date/time range) so two requests cannot both pass the check above.
        row = await queries.insert_booking(
            conn,
            service_id=service.id,
            service_title=service.title,
            service_duration=service.duration_minutes,
            day=body.date,
            start_time=start_time,
            end_time=end_time,
            customer_name=name,
            customer_phone=phone,
            is_verified=already_verified,
            verification_code=code,
        )

    logger.info("Booking %s created for %s at %s %s", row["id"], phone, body.date, start_time)
    activity.record(
        "booking_created",
        f"{name} booked {service.title} on {body.date.isoformat()} {start_time}-{end_time}",
    )

    sms_sent = None
    if code is not None:
        sms_sent = await send_verification_code(phone, code)
        if sms_sent:
            activity.record("sms_sent", f"Verification SMS sent to {phone}")
        else:
            activity.record("sms_failed", f"Verification SMS to {phone} failed")

    return BookingResponse(
        booking_id=str(row["id"]),
        cancellation_token=str(row["cancellation_token"]),
        status=row["status"],
        service_title=service.title,
        date=body.date,
        start_time=start_time,
        end_time=end_time,
        is_verified=already_verified,
        verification_pending=not already_verified,
        sms_sent=sms_sent,
    )
