"""Audit records are append-only."""

import pytest
from sqlalchemy import select

from app.core.immutability import ImmutabilityViolationError, register_immutability_enforcement
from app.models import AuditLog
from app.services.audit_service import audit_service


@pytest.fixture
async def entry(db, make_booking, host):
    booking = await make_booking()
    audit = await audit_service.append(
        db,
        audit_service.status_change_entry(
            actor_id=str(host.id),
            action="booking_status_changed",
            resource_type="booking",
            resource_id=booking.id,
            old_status="PENDING",
            new_status="HOST_APPROVED",
        ),
    )
    await db.commit()
    return audit


async def test_update_is_refused(db, entry):
    entry.action = "booking_status_rewritten"

    with pytest.raises(ImmutabilityViolationError):
        await db.flush()
    await db.rollback()


async def test_delete_is_refused(db, entry):
    await db.delete(entry)

    with pytest.raises(ImmutabilityViolationError):
        await db.flush()
    await db.rollback()


async def test_entry_round_trips(db, entry):
    stored = (await db.execute(select(AuditLog).where(AuditLog.id == entry.id))).scalar_one()
    assert stored.new_values == {"status": "HOST_APPROVED"}


def test_registration_is_idempotent():
    register_immutability_enforcement()
    register_immutability_enforcement()
