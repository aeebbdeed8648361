"""Booking reads and the request-expiry sweep."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AuthorizationError, TransactionNotFoundError, TransitionError
from app.domain.authorization import derive_role
from app.domain.booking_state import BOOKING_STATUS_LABELS
from app.domain.transaction import SYSTEM_ACTOR_ID, ActorRole, TransactionDomain, TransitionPayload
from app.domain.visibility import project_booking_location, state_permissions
from app.models.booking import Booking
from app.models.listing import Listing
from app.models.user import User
from app.services.audit_service import AuditService, audit_service
from app.services.transition_service import (
    TransitionExecutor,
    commit_side_effects,
    enqueue_audit_retry_task,
    queue_audit_retry,
    run_side_effect,
)

logger = logging.getLogger(__name__)

# Requests still waiting on the host or on payment
EXPIRABLE_STATUSES = ("PENDING", "HOST_APPROVED")

VIEWER_ROLES = (ActorRole.HOST, ActorRole.RENTER, ActorRole.ADMIN)


class BookingService:

    def __init__(
        self,
        audit: AuditService = audit_service,
        enqueue_audit_retry: Callable[[dict[str, Any]], None] = enqueue_audit_retry_task,
    ) -> None:
        self.audit = audit
        self.enqueue_audit_retry = enqueue_audit_retry

    @staticmethod
    def _viewer_role(booking: Booking, viewer: User) -> ActorRole:
        role = derive_role(TransactionDomain.BOOKING, booking, viewer.id, is_admin=viewer.is_admin)
        if role not in VIEWER_ROLES:
            raise AuthorizationError("You don't have permission to access this booking")
        return role

    async def get_booking_view(
        self,
        db: AsyncSession,
        booking_id: UUID,
        viewer: User,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Booking read model plus the flags its status allows."""
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise TransactionNotFoundError("Booking", str(booking_id))

        role = self._viewer_role(booking, viewer)

        return {
            "id": booking.id,
            "listing_id": booking.listing_id,
            "renter_id": booking.renter_id,
            "host_id": booking.host_id,
            "status": booking.status,
            "status_label": BOOKING_STATUS_LABELS.get(booking.status, booking.status),
            "viewer_role": role.value,
            "start_date": booking.start_date,
            "end_date": booking.end_date,
            "total_price": booking.total_price,
            "currency": booking.currency,
            "notes": booking.notes,
            "responded_at": booking.responded_at,
            "paid_at": booking.paid_at,
            "completed_at": booking.completed_at,
            "cancelled_at": booking.cancelled_at,
            "cancellation_by": booking.cancellation_by,
            "cancellation_reason": booking.cancellation_reason,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at,
            "permissions": state_permissions(
                TransactionDomain.BOOKING,
                booking.status,
                booking.completed_at,
                now or datetime.now(UTC),
                timedelta(hours=settings.messaging_grace_period_hours),
            ),
        }

    async def get_booking_location(
        self,
        db: AsyncSession,
        booking_id: UUID,
        viewer: User,
    ) -> dict[str, Any]:
        """Pickup location of the booked listing, withheld until the booking is paid.

        Each reveal of the precise address is written to the audit trail.
        """
        result = await db.execute(
            select(Booking, Listing)
            .join(Listing, Listing.id == Booking.listing_id)
            .where(Booking.id == booking_id)
        )
        row = result.one_or_none()
        if row is None:
            raise TransactionNotFoundError("Booking", str(booking_id))
        booking, listing = row

        role = self._viewer_role(booking, viewer)
        location = project_booking_location({
            "booking_id": booking.id,
            "status": booking.status,
            "viewer_role": role.value,
            "listing_id": listing.id,
            "listing_title": listing.title,
            "city": listing.city,
            "state": listing.state,
            "full_street_address": listing.full_street_address,
            "postal_code": listing.postal_code,
            "latitude": listing.latitude,
            "longitude": listing.longitude,
            "start_date": booking.start_date,
            "end_date": booking.end_date,
        })

        if not location["address_masked"]:
            context = f"booking {booking_id} (location reveal)"
            entry = self.audit.build_entry(
                actor_id=str(viewer.id),
                action="booking_location_revealed",
                resource_type="booking",
                resource_id=booking_id,
                new_values={"status": location["status"], "revealed_to": role.value},
            )
            audit_failed = (
                await run_side_effect(db, "audit", context, lambda: self.audit.append(db, entry))
                is not None
            )
            if await commit_side_effects(db, context) is not None or audit_failed:
                queue_audit_retry(entry, self.enqueue_audit_retry)

        return location

    async def find_expirable_bookings(
        self,
        db: AsyncSession,
        now: datetime | None = None,
        ttl_hours: int | None = None,
        limit: int | None = None,
    ) -> list[UUID]:
        """Ids of requests that have waited longer than the request TTL."""
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(hours=ttl_hours or settings.booking_request_ttl_hours)
        result = await db.execute(
            select(Booking.id)
            .where(
                Booking.status.in_(EXPIRABLE_STATUSES),
                Booking.created_at < cutoff,
            )
            .order_by(Booking.created_at)
            .limit(limit or settings.expiry_sweep_batch_size)
        )
        return list(result.scalars().all())

    async def expire_bookings(
        self,
        db: AsyncSession,
        executor: TransitionExecutor,
        booking_ids: list[UUID],
    ) -> dict[str, int]:
        """Drive each booking to EXPIRED as the system actor.

        A booking that moved on meanwhile is skipped, not retried.
        """
        expired = 0
        skipped = 0
        payload = TransitionPayload(reason="Booking request expired")

        for booking_id in booking_ids:
            try:
                await executor.apply_transition(
                    db, booking_id, "EXPIRED", SYSTEM_ACTOR_ID, payload
                )
                expired += 1
            except TransitionError as e:
                skipped += 1
                logger.warning(f"Skipping expiry of booking {booking_id}: {e.error_code} {e.message}")

        logger.info(f"Booking expiry sweep: expired={expired} skipped={skipped}")
        return {"expired": expired, "skipped": skipped}


booking_service = BookingService()
