import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

from salon.errors import UpstreamFailure

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS bookings (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    service_id TEXT NOT NULL,
    service_title TEXT NOT NULL,
    service_duration INT NOT NULL,
    date DATE NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    customer_name TEXT NOT NULL,
    customer_phone TEXT NOT NULL,
    cancellation_token UUID NOT NULL DEFAULT gen_random_uuid(),
    status TEXT NOT NULL DEFAULT 'confirmed',
    is_verified BOOLEAN NOT NULL DEFAULT false,
    verification_code TEXT,
    created_at TIMESTAMPTZ DEFAULT now()
);
CREATE INDEX IF NOT EXISTS idx_bookings_date ON bookings(date);
CREATE INDEX IF NOT EXISTS idx_bookings_phone ON bookings(customer_phone);
CREATE UNIQUE INDEX IF NOT EXISTS idx_bookings_token ON bookings(cancellation_token);

CREATE TABLE IF NOT EXISTS blocked_dates (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    date DATE NOT NULL UNIQUE,
    created_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS blocked_time_slots (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    date DATE NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT now()
);
CREATE INDEX IF NOT EXISTS idx_bts_date ON blocked_time_slots(date);

CREATE TABLE IF NOT EXISTS daily_schedules (
    date DATE PRIMARY KEY,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS activity_log (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    created_at TIMESTAMPTZ DEFAULT now(),
    type TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT ''
);
"""


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        raise RuntimeError("Database pool not initialised - call init_pool() first")
    return _pool


async def init_pool(dsn: str) -> None:
    global _pool
    _pool = await asyncpg.create_pool(
        dsn, min_size=0, max_size=5, timeout=30, command_timeout=30,
    )
    async with _pool.acquire(timeout=30) as conn:
        await conn.execute(SCHEMA_SQL)


async def close_pool() -> None:
    global _pool
    if _pool:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def connection() -> AsyncIterator[asyncpg.Connection]:
    """Acquire a pooled connection; data-store failures surface as UpstreamFailure."""
    pool = await get_pool()
    try:
        async with pool.acquire() as conn:
            yield conn
    except (asyncpg.PostgresError, OSError) as exc:
        logger.error("Data store call failed: %s", exc)
        raise UpstreamFailure("Data store unavailable") from exc
