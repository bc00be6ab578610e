"""SQL access for bookings, closures, schedules and the activity log.

Every function takes an acquired ``asyncpg`` connection as its first argument.
"""
from __future__ import annotations

from datetime import date

import asyncpg

_BOOKING_COLUMNS = (
    "id, service_id, service_title, service_duration, date, start_time, end_time, "
    "customer_name, customer_phone, cancellation_token, status, is_verified, "
    "verification_code, created_at"
)


# ---------------------------------------------------------------------------
# Availability inputs
# ---------------------------------------------------------------------------
async def fetch_active_bookings(conn: asyncpg.Connection, day: date) -> list[asyncpg.Record]:
    return await conn.fetch(
        "SELECT id, start_time, end_time FROM bookings "
        "WHERE date = $1 AND status <> 'cancelled'",
        day,
    )


async def fetch_blocked_slots(conn: asyncpg.Connection, day: date) -> list[asyncpg.Record]:
    return await conn.fetch(
        "SELECT id, date, start_time, end_time FROM blocked_time_slots "
        "WHERE date = $1 ORDER BY start_time",
        day,
    )


async def is_date_blocked(conn: asyncpg.Connection, day: date) -> bool:
    return bool(await conn.fetchval(
        "SELECT EXISTS (SELECT 1 FROM blocked_dates WHERE date = $1)", day,
    ))


async def fetch_blocked_dates(conn: asyncpg.Connection, start: date, end: date) -> set[date]:
    rows = await conn.fetch(
        "SELECT date FROM blocked_dates WHERE date >= $1 AND date < $2", start, end,
    )
    return {row["date"] for row in rows}


async def fetch_schedule(conn: asyncpg.Connection, day: date) -> asyncpg.Record | None:
    return await conn.fetchrow(
        "SELECT date, start_time, end_time FROM daily_schedules WHERE date = $1", day,
    )


async def fetch_schedules(
    conn: asyncpg.Connection, start: date, end: date
) -> dict[date, asyncpg.Record]:
    rows = await conn.fetch(
        "SELECT date, start_time, end_time FROM daily_schedules "
        "WHERE date >= $1 AND date < $2",
        start,
        end,
    )
    return {row["date"]: row for row in rows}


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------
async def insert_booking(
    conn: asyncpg.Connection,
    *,
    service_id: str,
    service_title: str,
    service_duration: int,
    day: date,
    start_time: str,
    end_time: str,
    customer_name: str,
    customer_phone: str,
    is_verified: bool,
    verification_code: str | None,
) -> asyncpg.Record:
    return await conn.fetchrow(
        f"""
        INSERT INTO bookings
            (service_id, service_title, service_duration, date, start_time, end_time,
             customer_name, customer_phone, status, is_verified, verification_code)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 'confirmed', $9, $10)
        RETURNING {_BOOKING_COLUMNS}
        """,
        service_id,
        service_title,
        service_duration,
        day,
        start_time,
        end_time,
        customer_name,
        customer_phone,
        is_verified,
        verification_code,
    )


async def get_booking(conn: asyncpg.Connection, booking_id: str) -> asyncpg.Record | None:
    return await conn.fetchrow(
        f"SELECT {_BOOKING_COLUMNS} FROM bookings WHERE id = $1::uuid", booking_id,
    )


async def get_booking_by_token(conn: asyncpg.Connection, token: str) -> asyncpg.Record | None:
    return await conn.fetchrow(
        f"SELECT {_BOOKING_COLUMNS} FROM bookings WHERE cancellation_token = $1::uuid",
        token,
    )


async def find_unverified_booking(
    conn: asyncpg.Connection, phone: str, code: str
) -> asyncpg.Record | None:
    """Most recently created unverified booking for *phone* holding *code*."""
    return await conn.fetchrow(
        f"""
        SELECT {_BOOKING_COLUMNS} FROM bookings
        WHERE customer_phone = $1 AND verification_code = $2 AND is_verified = false
        ORDER BY created_at DESC
        LIMIT 1
        """,
        phone,
        code,
    )


async def mark_verified(conn: asyncpg.Connection, booking_id: str) -> None:
    await conn.execute(
        "UPDATE bookings SET is_verified = true WHERE id = $1::uuid",
        booking_id,
    )


async def set_verification_code(conn: asyncpg.Connection, booking_id: str, code: str) -> None:
    await conn.execute(
        "UPDATE bookings SET verification_code = $1 WHERE id = $2::uuid AND is_verified = false",
        code,
        booking_id,
    )


async def cancel_booking_by_token(conn: asyncpg.Connection, token: str) -> None:
    await conn.execute(
        "UPDATE bookings SET status = 'cancelled' WHERE cancellation_token = $1::uuid",
        token,
    )


async def cancel_booking(conn: asyncpg.Connection, booking_id: str) -> asyncpg.Record | None:
    return await conn.fetchrow(
        f"""
        UPDATE bookings SET status = 'cancelled'
        WHERE id = $1::uuid AND status <> 'cancelled'
        RETURNING {_BOOKING_COLUMNS}
        """,
        booking_id,
    )


async def list_active_bookings(conn: asyncpg.Connection) -> list[asyncpg.Record]:
    return await conn.fetch(
        f"SELECT {_BOOKING_COLUMNS} FROM bookings WHERE status <> 'cancelled' "
        "ORDER BY date, start_time",
    )


# ---------------------------------------------------------------------------
# Closures and schedule overrides
# ---------------------------------------------------------------------------
async def list_blocked_dates(conn: asyncpg.Connection) -> list[asyncpg.Record]:
    return await conn.fetch("SELECT id, date FROM blocked_dates ORDER BY date")


async def insert_blocked_date(conn: asyncpg.Connection, day: date) -> asyncpg.Record:
    return await conn.fetchrow(
        """
        INSERT INTO blocked_dates (date) VALUES ($1)
        ON CONFLICT (date) DO UPDATE SET date = EXCLUDED.date
        RETURNING id, date
        """,
        day,
    )


async def delete_blocked_date(conn: asyncpg.Connection, blocked_id: str) -> date | None:
    return await conn.fetchval(
        "DELETE FROM blocked_dates WHERE id = $1::uuid RETURNING date", blocked_id,
    )


async def delete_blocked_date_by_day(conn: asyncpg.Connection, day: date) -> bool:
    result = await conn.execute("DELETE FROM blocked_dates WHERE date = $1", day)
    return result != "DELETE 0"


async def list_blocked_slots(
    conn: asyncpg.Connection, day: date | None = None
) -> list[asyncpg.Record]:
    if day is None:
        return await conn.fetch(
            "SELECT id, date, start_time, end_time FROM blocked_time_slots "
            "ORDER BY date, start_time",
        )
    return await fetch_blocked_slots(conn, day)


async def insert_blocked_slot(
    conn: asyncpg.Connection, day: date, start_time: str, end_time: str
) -> asyncpg.Record:
    return await conn.fetchrow(
        "INSERT INTO blocked_time_slots (date, start_time, end_time) "
        "VALUES ($1, $2, $3) RETURNING id, date, start_time, end_time",
        day,
        start_time,
        end_time,
    )


async def delete_blocked_slot(conn: asyncpg.Connection, slot_id: str) -> bool:
    result = await conn.execute(
        "DELETE FROM blocked_time_slots WHERE id = $1::uuid", slot_id,
    )
    return result != "DELETE 0"


async def upsert_schedule(
    conn: asyncpg.Connection, day: date, start_time: str, end_time: str
) -> asyncpg.Record:
    return await conn.fetchrow(
        """
        INSERT INTO daily_schedules (date, start_time, end_time)
        VALUES ($1, $2, $3)
        ON CONFLICT (date) DO UPDATE
           SET start_time = EXCLUDED.start_time,
               end_time   = EXCLUDED.end_time
        RETURNING date, start_time, end_time
        """,
        day,
        start_time,
        end_time,
    )


async def delete_schedule(conn: asyncpg.Connection, day: date) -> bool:
    result = await conn.execute("DELETE FROM daily_schedules WHERE date = $1", day)
    return result != "DELETE 0"


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------
async def insert_activity(conn: asyncpg.Connection, type_: str, description: str) -> None:
    await conn.execute(
        "INSERT INTO activity_log (type, description) VALUES ($1, $2)",
        type_,
        description,
    )


async def list_activity(conn: asyncpg.Connection, limit: int) -> list[asyncpg.Record]:
    return await conn.fetch(
        "SELECT id, created_at, type, description FROM activity_log "
        "ORDER BY created_at DESC LIMIT $1",
        limit,
    )


async def fetch_day(conn: asyncpg.Connection, day: date) -> dict:
    """Everything the availability engine needs for *day*, keyed by its argument names."""
    blocked = await is_date_blocked(conn, day)
    return {
        "bookings": await fetch_active_bookings(conn, day),
        "blocked_slots": await fetch_blocked_slots(conn, day),
        "blocked_dates": {day} if blocked else set(),
        "schedule": await fetch_schedule(conn, day),
    }
