"""Shared vocabulary for booking and sale transactions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TransactionDomain(str, Enum):
    """The two kinds of transaction under status control."""

    BOOKING = "booking"
    SALE = "sale"


class ActorRole(str, Enum):
    """Role of the acting identity relative to one transaction."""

    HOST = "host"
    RENTER = "renter"
    BUYER = "buyer"
    SELLER = "seller"
    SYSTEM = "system"
    ADMIN = "admin"
    OUTSIDER = "outsider"


# Identity used by schedulers and payment webhooks
SYSTEM_ACTOR_ID = "system"


@dataclass(frozen=True)
class TransitionPayload:
    """Operator commentary and domain data carried by a transition request."""

    reason: str | None = None
    notes: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
