from __future__ import annotations

import asyncio
import logging

from salon import database, queries
from salon.errors import UpstreamFailure

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Fire-and-forget writer for the audit log.

    ``record`` never blocks the caller and never raises. ``drain`` awaits
    every write still in flight.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Task] = set()

    def record(self, type_: str, description: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._write(type_, description))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, type_: str, description: str) -> None:
        try:
            async with database.connection() as conn:
                await queries.insert_activity(conn, type_, description)
        except (UpstreamFailure, RuntimeError) as exc:
            logger.warning("Activity %s not logged: %s", type_, exc)

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending(self) -> int:
        return len(self._pending)


activity = ActivityRecorder()
