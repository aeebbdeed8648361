"""Sale transaction state machine."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from app.domain.sale_fees import calculate_sale_fees
from app.domain.transaction import ActorRole, TransitionPayload


class SaleStatus(str, Enum):
    OFFER_PENDING = "OfferPending"
    OFFER_ACCEPTED = "OfferAccepted"
    PAYMENT_PENDING = "PaymentPending"
    PAID = "Paid"
    IN_TRANSFER = "InTransfer"
    COMPLETED = "Completed"
    CANCELED = "Canceled"
    DISPUTED = "Disputed"


SALE_TRANSITIONS = MappingProxyType({
    "OfferPending": ("OfferAccepted", "Canceled"),
    "OfferAccepted": ("PaymentPending", "Canceled"),
    "PaymentPending": ("Paid", "Canceled"),
    "Paid": ("InTransfer", "Disputed"),
    "InTransfer": ("Completed", "Disputed"),
    "Completed": (),
    "Canceled": (),
    "Disputed": (),
})

# Admin-only exits from a dispute
SALE_DISPUTE_RESOLUTIONS = MappingProxyType({
    "Disputed": ("Completed", "Canceled"),
})

SALE_TRANSITION_RULES = MappingProxyType({
    "OfferAccepted": frozenset({ActorRole.SELLER}),
    "PaymentPending": frozenset({ActorRole.BUYER}),
    "Paid": frozenset({ActorRole.BUYER, ActorRole.SYSTEM}),
    "InTransfer": frozenset({ActorRole.SELLER, ActorRole.SYSTEM}),
    "Completed": frozenset({ActorRole.BUYER, ActorRole.SELLER}),
    "Canceled": frozenset({ActorRole.BUYER, ActorRole.SELLER}),
    "Disputed": frozenset({ActorRole.BUYER, ActorRole.SELLER}),
})

# States an admin may force regardless of the allow-list
SALE_ADMIN_OVERRIDES = frozenset({"Canceled", "Completed"})

SALE_NOTIFICATION_TITLE = "Sale Status Update"
SALE_NOTIFICATION_TYPE = "SALE_UPDATE"

SALE_NOTIFICATION_MESSAGES = MappingProxyType({
    "OfferAccepted": "Your offer has been accepted. Proceed to payment.",
    "PaymentPending": "The buyer has started payment.",
    "Paid": "Payment confirmed. Funds are held in escrow.",
    "InTransfer": "Equipment transfer has started.",
    "Completed": "The sale has been completed.",
    "Canceled": "The transaction has been canceled.",
    "Disputed": "A dispute has been opened for this transaction.",
})

SALE_STATUS_LABELS = MappingProxyType({
    "OfferPending": "Offer Pending",
    "OfferAccepted": "Offer Accepted",
    "PaymentPending": "Payment Pending",
    "Paid": "Paid - In Escrow",
    "InTransfer": "In Transfer",
    "Completed": "Completed",
    "Canceled": "Canceled",
    "Disputed": "Disputed",
})

DEFAULT_TRANSFER_METHOD = "pickup"


def resolve_final_price(sale: Any, payload: TransitionPayload) -> int:
    """Price fixed on acceptance: explicit price, else current offer, else asking."""
    explicit = payload.data.get("final_price")
    if explicit is not None:
        return int(explicit)
    if sale.offer_amount is not None:
        return int(sale.offer_amount)
    return int(sale.asking_price)


def sale_transition_fields(
    sale: Any,
    target: str,
    actor_role: ActorRole,
    payload: TransitionPayload,
    now: datetime,
    commission_percent: Decimal,
) -> dict[str, Any]:
    """Column values written alongside ``status`` when entering ``target``."""
    data = payload.data
    fields: dict[str, Any] = {}

    if target == "OfferAccepted":
        fees = calculate_sale_fees(resolve_final_price(sale, payload), commission_percent)
        fields["offer_accepted_at"] = now
        fields["final_price"] = fees.sale_price
        fields["seller_commission_amount"] = fees.seller_commission
        fields["seller_payout_amount"] = fees.seller_payout
    elif target == "PaymentPending":
        fields["payment_pending_at"] = now
        fields["payment_method"] = data.get("payment_method")
    elif target == "Paid":
        fields["paid_at"] = now
        fields["escrow_held_at"] = now
        fields["payment_intent_id"] = data.get("payment_intent_id")
    elif target == "InTransfer":
        fields["in_transfer_at"] = now
        fields["transfer_method"] = data.get("transfer_method") or DEFAULT_TRANSFER_METHOD
        fields["shipping_tracking_number"] = data.get("tracking_number")
        fields["shipping_carrier"] = data.get("carrier")
    elif target == "Completed":
        fields["completed_at"] = now
        fields["escrow_released_at"] = now
    elif target == "Canceled":
        fields["canceled_at"] = now
        fields["canceled_by"] = actor_role.value
        fields["cancellation_reason"] = payload.reason
    elif target == "Disputed":
        fields["disputed_at"] = now
        fields["dispute_reason"] = payload.reason

    return fields
