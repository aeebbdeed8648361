"""Role derivation and per-transition authorization."""

import logging
from typing import Any

from app.domain.booking_state import BOOKING_TRANSITION_RULES
from app.domain.sale_state import SALE_ADMIN_OVERRIDES, SALE_TRANSITION_RULES
from app.domain.transaction import SYSTEM_ACTOR_ID, ActorRole, TransactionDomain

logger = logging.getLogger(__name__)

TRANSITION_RULES = {
    TransactionDomain.BOOKING: BOOKING_TRANSITION_RULES,
    TransactionDomain.SALE: SALE_TRANSITION_RULES,
}

ADMIN_OVERRIDES = {
    TransactionDomain.BOOKING: frozenset(),
    TransactionDomain.SALE: SALE_ADMIN_OVERRIDES,
}

# Counterparty attribute -> role, checked in order
COUNTERPARTY_FIELDS = {
    TransactionDomain.BOOKING: (("host_id", ActorRole.HOST), ("renter_id", ActorRole.RENTER)),
    TransactionDomain.SALE: (("seller_id", ActorRole.SELLER), ("buyer_id", ActorRole.BUYER)),
}


def counterparties(domain: TransactionDomain, transaction: Any) -> dict[ActorRole, Any]:
    """Map each counterparty role to its identity on ``transaction``."""
    return {
        role: getattr(transaction, attr)
        for attr, role in COUNTERPARTY_FIELDS[TransactionDomain(domain)]
    }


def notification_recipients(domain: TransactionDomain, transaction: Any, actor_role: ActorRole) -> list[Any]:
    """The other counterparty, or both when the actor is neither of them."""
    parties = counterparties(domain, transaction)
    if actor_role in parties:
        return [party for role, party in parties.items() if role is not actor_role]
    return list(parties.values())


def derive_role(
    domain: TransactionDomain,
    transaction: Any,
    actor_id: Any,
    is_admin: bool = False,
) -> ActorRole:
    """Role of ``actor_id`` on this transaction, by identity comparison only.

    ``is_admin`` must come from server-side account data, never the request.
    """
    actor = str(actor_id) if actor_id is not None else ""
    for role, party_id in counterparties(domain, transaction).items():
        if actor and actor == str(party_id):
            return role
    if actor == SYSTEM_ACTOR_ID:
        return ActorRole.SYSTEM
    if is_admin:
        return ActorRole.ADMIN
    return ActorRole.OUTSIDER


def authorize(domain: TransactionDomain, to_state: str, actor_role: ActorRole) -> bool:
    """Whether ``actor_role`` may move a transaction into ``to_state``.

    Targets without an explicit rule are denied.
    """
    domain = TransactionDomain(domain)
    to_state = getattr(to_state, "value", to_state)
    rule = TRANSITION_RULES[domain].get(to_state)
    if rule is None:
        logger.warning(f"No authorization rule for {domain.value} target {to_state}; denying")
        return False
    if actor_role is ActorRole.ADMIN and to_state in ADMIN_OVERRIDES[domain]:
        return True
    return actor_role in rule


def describe_allowed_roles(domain: TransactionDomain, to_state: str) -> str:
    rule = TRANSITION_RULES[TransactionDomain(domain)].get(to_state, frozenset())
    roles = sorted(role.value for role in rule)
    if to_state in ADMIN_OVERRIDES[TransactionDomain(domain)]:
        roles.append(ActorRole.ADMIN.value)
    return " or ".join(roles) if roles else "nobody"
