"""Booking state machine."""

from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from app.domain.transaction import ActorRole, TransitionPayload


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    HOST_APPROVED = "HOST_APPROVED"
    PAID = "PAID"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DECLINED = "DECLINED"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"
    DISPUTED = "DISPUTED"


BOOKING_TRANSITIONS = MappingProxyType({
    "PENDING": ("HOST_APPROVED", "DECLINED", "CANCELED", "EXPIRED"),
    "HOST_APPROVED": ("PAID", "CANCELED", "EXPIRED"),
    "PAID": ("IN_PROGRESS", "CANCELED", "DISPUTED"),
    "IN_PROGRESS": ("COMPLETED", "DISPUTED"),
    "COMPLETED": ("DISPUTED",),
    "DECLINED": (),
    "CANCELED": (),
    "EXPIRED": (),
    "DISPUTED": (),
})

# Who may move a booking into each state
BOOKING_TRANSITION_RULES = MappingProxyType({
    "HOST_APPROVED": frozenset({ActorRole.HOST}),
    "DECLINED": frozenset({ActorRole.HOST}),
    "PAID": frozenset({ActorRole.RENTER, ActorRole.SYSTEM}),
    "IN_PROGRESS": frozenset({ActorRole.HOST, ActorRole.SYSTEM}),
    "COMPLETED": frozenset({ActorRole.HOST, ActorRole.RENTER}),
    "CANCELED": frozenset({ActorRole.HOST, ActorRole.RENTER}),
    "DISPUTED": frozenset({ActorRole.HOST, ActorRole.RENTER}),
    "EXPIRED": frozenset({ActorRole.SYSTEM}),
})

BOOKING_NOTIFICATION_TITLE = "Booking Status Update"
BOOKING_NOTIFICATION_TYPE = "BOOKING_UPDATE"

BOOKING_NOTIFICATION_MESSAGES = MappingProxyType({
    "HOST_APPROVED": "Your booking request has been approved!",
    "DECLINED": "Your booking request was declined.",
    "PAID": "Payment received for booking.",
    "IN_PROGRESS": "Your rental is now active.",
    "COMPLETED": "Booking has been marked as complete.",
    "CANCELED": "Booking has been canceled.",
    "DISPUTED": "A dispute has been opened for this booking.",
    "EXPIRED": "Your booking request has expired.",
})

BOOKING_STATUS_LABELS = MappingProxyType({
    "PENDING": "Pending Approval",
    "HOST_APPROVED": "Approved - Awaiting Payment",
    "PAID": "Paid",
    "IN_PROGRESS": "In Progress",
    "COMPLETED": "Completed",
    "DECLINED": "Declined",
    "CANCELED": "Canceled",
    "EXPIRED": "Expired",
    "DISPUTED": "Disputed",
})


def booking_transition_fields(
    target: str,
    actor_role: ActorRole,
    payload: TransitionPayload,
    now: datetime,
) -> dict[str, Any]:
    """Column values written alongside ``status`` when entering ``target``."""
    fields: dict[str, Any] = {}

    if target == "HOST_APPROVED":
        fields["responded_at"] = now
    elif target == "DECLINED":
        fields["responded_at"] = now
        fields["decline_reason"] = payload.reason
    elif target == "PAID":
        fields["paid_at"] = now
    elif target == "IN_PROGRESS":
        fields["started_at"] = now
    elif target == "COMPLETED":
        fields["completed_at"] = now
    elif target == "CANCELED":
        fields["cancelled_at"] = now
        fields["cancellation_by"] = actor_role.value
        fields["cancellation_reason"] = payload.reason
    elif target == "DISPUTED":
        fields["disputed_at"] = now
        fields["dispute_reason"] = payload.reason
    elif target == "EXPIRED":
        fields["expired_at"] = now

    return fields
