from __future__ import annotations

import logging
from datetime import date, timedelta

from fastapi import APIRouter, HTTPException, Query

from salon import clock, database, queries
from salon.config import settings
from salon.services.availability import compute_available_slots, open_dates
from salon.services.catalog import SERVICES, get_service

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_date(date_str: str) -> date:
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format, use YYYY-MM-DD")


@router.get("/api/services")
async def services():
    return {"services": [service.model_dump() for service in SERVICES]}


@router.get("/api/available-dates")
async def available_dates(days: int | None = Query(None, ge=1, le=90)):
    days = days or settings.booking_horizon_days
    now = clock.now_local()
    start = now.date()
    end = start + timedelta(days=days)

    async with database.connection() as conn:
        blocked = await queries.fetch_blocked_dates(conn, start, end)
        schedules = await queries.fetch_schedules(conn, start, end)

    dates = open_dates(start, days, blocked, schedules, now=now)
    return {"dates": [d.isoformat() for d in dates]}


@router.get("/api/availability")
async def availability(
    service_id: str = Query(...),
    date_str: str = Query(..., alias="date"),
):
    service = get_service(service_id)
    target_date = parse_date(date_str)
    now = clock.now_local()

    if target_date < now.date():
        return {
            "date": date_str,
            "service_id": service.id,
            "duration_minutes": service.duration_minutes,
            "slots": [],
        }

    async with database.connection() as conn:
        day = await queries.fetch_day(conn, target_date)

    slots = compute_available_slots(
        service.duration_minutes, target_date, now=now, **day,
    )
    logger.debug("%d slots for %s on %s", len(slots), service.id, target_date)

    return {
        "date": date_str,
        "service_id": service.id,
        "duration_minutes": service.duration_minutes,
        "slots": slots,
    }
