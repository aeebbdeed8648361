"""Celery background tasks.

- Booking request expiry (system actor)
- Audit entry retry queue
"""

import asyncio
import logging
from typing import Any

from celery import shared_task

from app.config import settings
from app.database import engine, get_db_context
from app.services.audit_service import audit_service
from app.services.booking_service import booking_service
from app.services.transition_service import build_booking_executor
from app.worker import celery_app  # noqa: F401

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""

    async def _run():
        try:
            return await coro
        finally:
            # Pooled connections are bound to this event loop
            await engine.dispose()

    return asyncio.run(_run())


# ==================== BOOKING EXPIRY ====================


@shared_task(bind=True, max_retries=3)
def expire_stale_bookings(self):
    """Drive unanswered or unpaid booking requests to EXPIRED.

    Runs every 15 minutes. Bookings that changed status meanwhile are skipped.
    """
    try:
        summary = run_async(_expire_stale_bookings())
        return {"status": "success", **summary}
    except Exception as exc:
        logger.exception("Booking expiry sweep failed")
        raise self.retry(exc=exc, countdown=300)


async def _expire_stale_bookings() -> dict[str, int]:
    async with get_db_context() as db:
        booking_ids = await booking_service.find_expirable_bookings(db)
        if not booking_ids:
            return {"expired": 0, "skipped": 0}
        return await booking_service.expire_bookings(db, build_booking_executor(), booking_ids)


# ==================== AUDIT RETRY ====================


@shared_task(bind=True, max_retries=None)
def append_audit_entry(self, entry: dict[str, Any]):
    """Append an audit entry whose post-commit write failed.

    Retried with back-off up to ``audit_retry_max_attempts``.
    """
    try:
        run_async(_append_audit_entry(entry))
        return {"status": "success", "resource_id": entry["resource_id"]}
    except Exception as exc:
        attempt = self.request.retries + 1
        if attempt >= settings.audit_retry_max_attempts:
            logger.error(
                f"AUDIT_ENTRY_LOST: giving up after {attempt} attempts entry={entry} error={exc}"
            )
            raise
        countdown = settings.audit_retry_delay_seconds * (2 ** self.request.retries)
        logger.warning(f"Audit append attempt {attempt} failed, retrying in {countdown}s: {exc}")
        raise self.retry(exc=exc, countdown=countdown)


async def _append_audit_entry(entry: dict[str, Any]) -> None:
    async with get_db_context() as db:
        await audit_service.append(db, entry)
