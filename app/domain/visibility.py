"""Status-derived visibility rules.

Everything here is recomputed from ``status`` at read time; nothing is
stored on the transaction row.
"""

from datetime import datetime, timedelta
from typing import Any

from app.domain.transaction import TransactionDomain
from app.domain.transitions import allowed_transitions, is_terminal

# States at which the precise location is revealed (payment has cleared)
ADDRESS_REVEALED_STATES = {
    TransactionDomain.BOOKING: frozenset({"PAID", "IN_PROGRESS", "COMPLETED"}),
    TransactionDomain.SALE: frozenset({"Paid", "InTransfer", "Completed", "Disputed"}),
}

LOCATION_FIELDS = ("full_street_address", "postal_code", "latitude", "longitude")
SALE_MASKED_FIELDS = LOCATION_FIELDS + ("seller_phone",)

MESSAGING_OPEN_STATES = {
    TransactionDomain.BOOKING: frozenset(
        {"PENDING", "HOST_APPROVED", "PAID", "IN_PROGRESS", "DISPUTED"}
    ),
    TransactionDomain.SALE: frozenset(
        {"OfferAccepted", "PaymentPending", "Paid", "InTransfer", "Disputed"}
    ),
}

COMPLETED_STATES = {
    TransactionDomain.BOOKING: "COMPLETED",
    TransactionDomain.SALE: "Completed",
}

SALE_ESCROW_STATES = frozenset({"Paid", "InTransfer", "Disputed"})
BOOKING_CALENDAR_LOCKED_STATES = frozenset({"PAID", "IN_PROGRESS"})


def is_address_masked(domain: TransactionDomain, status: str) -> bool:
    return status not in ADDRESS_REVEALED_STATES[TransactionDomain(domain)]


def project_masked_view(
    domain: TransactionDomain,
    view: dict[str, Any],
    fields: tuple[str, ...],
) -> dict[str, Any]:
    """Return a copy of a read model with ``fields`` withheld while the address is masked."""
    projected = dict(view)
    masked = is_address_masked(domain, projected["status"])
    if masked:
        for name in fields:
            projected[name] = None
    projected["address_masked"] = masked
    return projected


def project_sale_view(view: dict[str, Any]) -> dict[str, Any]:
    return project_masked_view(TransactionDomain.SALE, view, SALE_MASKED_FIELDS)


def project_booking_location(view: dict[str, Any]) -> dict[str, Any]:
    return project_masked_view(TransactionDomain.BOOKING, view, LOCATION_FIELDS)


def is_messaging_enabled(
    domain: TransactionDomain,
    status: str,
    completed_at: datetime | None,
    now: datetime,
    grace_period: timedelta,
) -> bool:
    """Whether the counterparties may message each other about the transaction.

    Messaging stays open for ``grace_period`` after completion.
    """
    domain = TransactionDomain(domain)
    if status in MESSAGING_OPEN_STATES[domain]:
        return True
    if status == COMPLETED_STATES[domain] and completed_at is not None:
        if completed_at.tzinfo is None and now.tzinfo is not None:
            completed_at = completed_at.replace(tzinfo=now.tzinfo)
        return now - completed_at <= grace_period
    return False


def state_permissions(
    domain: TransactionDomain,
    status: str,
    completed_at: datetime | None,
    now: datetime,
    grace_period: timedelta,
) -> dict[str, Any]:
    """Client-facing flags describing what the current status allows."""
    domain = TransactionDomain(domain)
    permissions: dict[str, Any] = {
        "canTransitionTo": allowed_transitions(domain, status),
        "isTerminal": is_terminal(domain, status),
        "messagingEnabled": is_messaging_enabled(domain, status, completed_at, now, grace_period),
        "addressMasked": is_address_masked(domain, status),
    }

    if domain is TransactionDomain.SALE:
        permissions.update(
            fundsInEscrow=status in SALE_ESCROW_STATES,
            payoutReleased=status == "Completed",
            listingHidden=True,
            canConfirmReceipt=status == "InTransfer",
        )
    else:
        permissions.update(
            calendarLocked=status in BOOKING_CALENDAR_LOCKED_STATES,
            payoutReleased=status == "COMPLETED",
        )

    return permissions
