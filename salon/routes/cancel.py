from __future__ import annotations

import logging

from fastapi import APIRouter

from salon import database, queries
from salon.errors import NotFound
from salon.services.activity import activity
from salon.services.verification import is_uuid

logger = logging.getLogger(__name__)

router = APIRouter()


def public_booking(row) -> dict:
    """Booking fields safe to show to the customer."""
    return {
        "id": str(row["id"]),
        "service_title": row["service_title"],
        "date": row["date"].isoformat(),
        "start_time": row["start_time"],
        "end_time": row["end_time"],
        "customer_name": row["customer_name"],
        "status": row["status"],
    }


async def _load(conn, token: str):
    booking = await queries.get_booking_by_token(conn, token) if is_uuid(token) else None
    if booking is None:
        raise NotFound("No booking found for this link")
    return booking


@router.get("/api/cancel/{token}")
async def get_cancellation(token: str):
    async with database.connection() as conn:
        booking = await _load(conn, token)
    return {
        "booking": public_booking(booking),
        "cancelled": booking["status"] == "cancelled",
    }


@router.post("/api/cancel/{token}")
async def cancel(token: str):
    async with database.connection() as conn:
        booking = await _load(conn, token)
        if booking["status"] == "cancelled":
            return {
                "booking": public_booking(booking),
                "cancelled": True,
                "already_cancelled": True,
            }
        await queries.cancel_booking_by_token(conn, token)

    logger.info("Booking %s cancelled by customer", booking["id"])
    activity.record(
        "booking_cancelled",
        f"{booking['customer_name']} cancelled {booking['date'].isoformat()} {booking['start_time']}",
    )
    return {
        "booking": {**public_booking(booking), "status": "cancelled"},
        "cancelled": True,
        "already_cancelled": False,
    }
