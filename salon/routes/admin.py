from __future__ import annotations

import logging
import secrets
from datetime import date

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel

from salon import database, queries
from salon.config import settings
from salon.errors import NotFound
from salon.routes.availability import parse_date
from salon.services.activity import activity
from salon.services.timeutil import to_hhmm, to_minutes
from salon.services.verification import is_uuid

logger = logging.getLogger(__name__)


def require_admin(x_admin_password: str = Header("")) -> None:
    if not settings.admin_password or not secrets.compare_digest(
        x_admin_password.encode(), settings.admin_password.encode()
    ):
        raise HTTPException(status_code=401, detail="Admin password required")


router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)])


class BlockDateRequest(BaseModel):
    date: date


class TimeRange(BaseModel):
    start_time: str
    end_time: str


class BlockSlotRequest(TimeRange):
    date: date


def _normalized_range(body: TimeRange, allow_empty: bool = False) -> tuple[str, str]:
    start, end = to_minutes(body.start_time), to_minutes(body.end_time)
    if end < start or (end == start and not allow_empty):
        raise HTTPException(status_code=400, detail="end_time must be after start_time")
    return to_hhmm(start), to_hhmm(end)


def _require_uuid(value: str) -> None:
    if not is_uuid(value):
        raise NotFound("Not found")


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------
@router.get("/bookings")
async def list_bookings():
    async with database.connection() as conn:
        rows = await queries.list_active_bookings(conn)
    return {"bookings": [dict(row) for row in rows]}


@router.post("/bookings/{booking_id}/cancel")
async def cancel_booking(booking_id: str):
    _require_uuid(booking_id)
    async with database.connection() as conn:
        row = await queries.cancel_booking(conn, booking_id)
    if row is None:
        raise NotFound("Booking not found or already cancelled")

    activity.record("booking_cancelled", f"Booking of {row['customer_name']} cancelled by admin")
    return {"status": "cancelled", "booking": dict(row)}


# ---------------------------------------------------------------------------
# Full-day closures
# ---------------------------------------------------------------------------
@router.get("/blocked-dates")
async def list_blocked_dates():
    async with database.connection() as conn:
        rows = await queries.list_blocked_dates(conn)
    return {"blocked_dates": [dict(row) for row in rows]}


@router.post("/blocked-dates")
async def block_date(body: BlockDateRequest):
    async with database.connection() as conn:
        row = await queries.insert_blocked_date(conn, body.date)
    activity.record("date_blocked", f"Date {body.date.isoformat()} blocked")
    return dict(row)


@router.post("/blocked-dates/toggle")
async def toggle_blocked_date(body: BlockDateRequest):
    async with database.connection() as conn:
        if await queries.is_date_blocked(conn, body.date):
            await queries.delete_blocked_date_by_day(conn, body.date)
            blocked = False
        else:
            await queries.insert_blocked_date(conn, body.date)
            blocked = True

    activity.record(
        "date_blocked" if blocked else "date_unblocked",
        f"Date {body.date.isoformat()} {'blocked' if blocked else 'unblocked'}",
    )
    return {"date": body.date.isoformat(), "blocked": blocked}


@router.delete("/blocked-dates/{blocked_id}")
async def unblock_date(blocked_id: str):
    _require_uuid(blocked_id)
    async with database.connection() as conn:
        day = await queries.delete_blocked_date(conn, blocked_id)
    if day is None:
        raise NotFound("Blocked date not found")

    activity.record("date_unblocked", f"Date {day.isoformat()} unblocked")
    return {"status": "deleted", "date": day.isoformat()}


# ---------------------------------------------------------------------------
# Partial closures
# ---------------------------------------------------------------------------
@router.get("/blocked-slots")
async def list_blocked_slots(date_str: str | None = Query(None, alias="date")):
    day = parse_date(date_str) if date_str else None
    async with database.connection() as conn:
        rows = await queries.list_blocked_slots(conn, day)
    return {"blocked_slots": [dict(row) for row in rows]}


@router.post("/blocked-slots")
async def block_slot(body: BlockSlotRequest):
    start_time, end_time = _normalized_range(body)
    async with database.connection() as conn:
        row = await queries.insert_blocked_slot(conn, body.date, start_time, end_time)

    activity.record(
        "slot_blocked", f"{body.date.isoformat()} {start_time}-{end_time} blocked",
    )
    return dict(row)


@router.delete("/blocked-slots/{slot_id}")
async def unblock_slot(slot_id: str):
    _require_uuid(slot_id)
    async with database.connection() as conn:
        deleted = await queries.delete_blocked_slot(conn, slot_id)
    if not deleted:
        raise NotFound("Blocked slot not found")

    activity.record("slot_unblocked", f"Blocked slot {slot_id} removed")
    return {"status": "deleted"}


# ---------------------------------------------------------------------------
# Working-hours overrides
# ---------------------------------------------------------------------------
@router.put("/schedules/{date_str}")
async def set_schedule(date_str: str, body: TimeRange):
    day = parse_date(date_str)
    start_time, end_time = _normalized_range(body, allow_empty=True)
    async with database.connection() as conn:
        row = await queries.upsert_schedule(conn, day, start_time, end_time)

    activity.record("schedule_set", f"Hours for {day.isoformat()} set to {start_time}-{end_time}")
    return dict(row)


@router.delete("/schedules/{date_str}")
async def clear_schedule(date_str: str):
    day = parse_date(date_str)
    async with database.connection() as conn:
        deleted = await queries.delete_schedule(conn, day)
    if not deleted:
        raise NotFound("No schedule override for this date")

    activity.record("schedule_cleared", f"Hours for {day.isoformat()} reset to default")
    return {"status": "deleted"}


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------
@router.get("/activity")
async def list_activity(limit: int = Query(10, ge=1, le=200)):
    async with database.connection() as conn:
        rows = await queries.list_activity(conn, limit)
    return {"activity": [dict(row) for row in rows]}
