"""Booking reads and the expiry sweep."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from app.core.exceptions import AuthorizationError, TransactionNotFoundError
from app.models import AuditLog, Notification
from app.services.booking_service import BookingService, booking_service
from app.services.transaction_repository import booking_repository
from tests.conftest import FailingAuditService, RecordingEnqueue

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class TestBookingView:

    async def test_host_view(self, db, make_booking, host):
        booking = await make_booking(status="PAID")

        view = await booking_service.get_booking_view(db, booking.id, host, now=NOW)

        assert view["viewer_role"] == "host"
        assert view["status_label"] == "Paid"
        assert view["permissions"] == {
            "canTransitionTo": ["IN_PROGRESS", "CANCELED", "DISPUTED"],
            "isTerminal": False,
            "messagingEnabled": True,
            "addressMasked": False,
            "calendarLocked": True,
            "payoutReleased": False,
        }

    async def test_outsider_denied(self, db, make_booking, outsider):
        booking = await make_booking()
        with pytest.raises(AuthorizationError):
            await booking_service.get_booking_view(db, booking.id, outsider)

    async def test_unknown_booking(self, db, host):
        with pytest.raises(TransactionNotFoundError):
            await booking_service.get_booking_view(db, uuid.uuid4(), host)


class TestBookingLocation:

    async def test_masked_before_payment(self, db, make_booking, renter):
        booking = await make_booking(status="HOST_APPROVED")

        location = await booking_service.get_booking_location(db, booking.id, renter)

        assert location["address_masked"] is True
        assert location["full_street_address"] is None
        assert location["postal_code"] is None
        assert location["latitude"] is None
        assert location["city"] == "Austin"
        assert location["viewer_role"] == "renter"
        assert (await db.execute(select(AuditLog))).scalars().all() == []

    async def test_revealed_once_paid_and_audited(self, db, make_booking, renter):
        booking = await make_booking(status="PAID")

        location = await booking_service.get_booking_location(db, booking.id, renter)

        assert location["address_masked"] is False
        assert location["full_street_address"] == "500 Congress Ave"
        assert location["postal_code"] == "78701"
        [entry] = (await db.execute(select(AuditLog))).scalars().all()
        assert entry.action == "booking_location_revealed"
        assert entry.actor_id == str(renter.id)
        assert entry.new_values == {"status": "PAID", "revealed_to": "renter"}

    async def test_admin_may_read(self, db, make_booking, admin):
        booking = await make_booking(status="IN_PROGRESS")

        location = await booking_service.get_booking_location(db, booking.id, admin)

        assert location["viewer_role"] == "admin"
        assert location["address_masked"] is False

    async def test_outsider_denied(self, db, make_booking, outsider):
        booking = await make_booking(status="PAID")
        with pytest.raises(AuthorizationError):
            await booking_service.get_booking_location(db, booking.id, outsider)

    async def test_unknown_booking(self, db, host):
        with pytest.raises(TransactionNotFoundError):
            await booking_service.get_booking_location(db, uuid.uuid4(), host)

    async def test_failed_reveal_audit_is_queued(self, db, make_booking, host):
        booking = await make_booking(status="COMPLETED")
        retries = RecordingEnqueue()
        service = BookingService(audit=FailingAuditService(), enqueue_audit_retry=retries)

        location = await service.get_booking_location(db, booking.id, host)

        assert location["address_masked"] is False
        [entry] = retries.entries
        assert entry["action"] == "booking_location_revealed"
        assert entry["resource_id"] == str(booking.id)


class TestExpirySweep:

    async def test_finds_only_stale_open_requests(self, db, make_booking):
        stale = NOW - timedelta(hours=49)
        fresh = NOW - timedelta(hours=2)
        old_pending = await make_booking(created_at=stale)
        old_approved = await make_booking(status="HOST_APPROVED", created_at=stale - timedelta(hours=1))
        await make_booking(status="PAID", created_at=stale)
        await make_booking(created_at=fresh)

        found = await booking_service.find_expirable_bookings(db, now=NOW, ttl_hours=48)

        assert found == [old_approved.id, old_pending.id]

    async def test_respects_batch_limit(self, db, make_booking):
        for hours in (50, 60, 70):
            await make_booking(created_at=NOW - timedelta(hours=hours))

        found = await booking_service.find_expirable_bookings(db, now=NOW, ttl_hours=48, limit=2)

        assert len(found) == 2

    async def test_expires_and_skips(self, db, make_booking, host, renter, booking_executor):
        pending = await make_booking()
        paid = await make_booking(status="PAID")

        summary = await booking_service.expire_bookings(db, booking_executor, [pending.id, paid.id])

        assert summary == {"expired": 1, "skipped": 1}
        expired = await booking_repository.find_by_id(db, pending.id)
        assert expired.status == "EXPIRED"
        assert expired.expired_at is not None
        assert (await booking_repository.find_by_id(db, paid.id)).status == "PAID"

        result = await db.execute(select(Notification.user_id, Notification.body))
        assert sorted(tuple(row) for row in result.all()) == sorted([
            (host.id, "Your booking request has expired."),
            (renter.id, "Your booking request has expired."),
        ])
