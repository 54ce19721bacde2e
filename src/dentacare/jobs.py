"""
Periodic housekeeping run inside the API process.

Each pass sends due appointment reminders, marks overdue bookings as
no-shows and closes queue entries left waiting on an earlier day, across
all clinics, in its own database session.
"""
from __future__ import annotations

import asyncio

import structlog

from .db.session import get_db_manager
from .services.appointment_service import AppointmentService
from .services.queue_service import QueueService
from .services.reminder_service import ReminderService

log = structlog.get_logger(__name__)


async def run_housekeeping() -> dict[str, int]:
    async with get_db_manager().session() as session:
        sent = await ReminderService(session).dispatch()
        no_shows = await AppointmentService(session).mark_no_shows()
        stale = await QueueService(session).expire_stale_entries()
    return {"reminders_sent": sent, "no_shows_marked": no_shows, "stale_queue_entries_closed": stale}


async def housekeeping_loop(interval_seconds: int) -> None:
    """Run housekeeping every interval until cancelled; a failed pass is logged and the next one still runs."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            result = await run_housekeeping()
            if any(result.values()):
                log.info("housekeeping_pass", **result)
        except Exception:
            log.exception("housekeeping_failed")
