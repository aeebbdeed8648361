"""Transition tables for both transaction domains."""

from types import MappingProxyType

from app.core.exceptions import InvalidTransitionError
from app.domain.booking_state import BOOKING_TRANSITIONS
from app.domain.sale_state import SALE_DISPUTE_RESOLUTIONS, SALE_TRANSITIONS
from app.domain.transaction import ActorRole, TransactionDomain

TRANSITION_TABLES = MappingProxyType({
    TransactionDomain.BOOKING: BOOKING_TRANSITIONS,
    TransactionDomain.SALE: SALE_TRANSITIONS,
})

RESOLUTION_TABLES = MappingProxyType({
    TransactionDomain.BOOKING: MappingProxyType({}),
    TransactionDomain.SALE: SALE_DISPUTE_RESOLUTIONS,
})


def _status(value) -> str:
    return getattr(value, "value", value)


def can_transition(domain: TransactionDomain, from_state: str, to_state: str) -> bool:
    """Whether ``to_state`` is one step from ``from_state``.

    An unknown ``from_state`` is never advanced.
    """
    targets = TRANSITION_TABLES[TransactionDomain(domain)].get(_status(from_state))
    if targets is None:
        return False
    return _status(to_state) in targets


def can_resolve(domain: TransactionDomain, from_state: str, to_state: str) -> bool:
    """Whether the edge is a dispute-resolution edge (admin only)."""
    targets = RESOLUTION_TABLES[TransactionDomain(domain)].get(_status(from_state), ())
    return _status(to_state) in targets


def allowed_transitions(
    domain: TransactionDomain,
    from_state: str,
    actor_role: ActorRole | None = None,
) -> list[str]:
    """States reachable from ``from_state`` in one step, in table order."""
    from_state = _status(from_state)
    allowed = list(TRANSITION_TABLES[TransactionDomain(domain)].get(from_state, ()))
    if actor_role is ActorRole.ADMIN:
        for target in RESOLUTION_TABLES[TransactionDomain(domain)].get(from_state, ()):
            if target not in allowed:
                allowed.append(target)
    return allowed


def is_known_status(domain: TransactionDomain, state: str) -> bool:
    return _status(state) in TRANSITION_TABLES[TransactionDomain(domain)]


def is_terminal(domain: TransactionDomain, state: str) -> bool:
    """No outgoing edge in the normal flow."""
    return not TRANSITION_TABLES[TransactionDomain(domain)].get(_status(state), ())


def assert_transition(
    domain: TransactionDomain,
    from_state: str,
    to_state: str,
    actor_role: ActorRole | None = None,
) -> None:
    """Raise ``InvalidTransitionError`` unless the edge may be taken by this role."""
    if can_transition(domain, from_state, to_state):
        return
    if actor_role is ActorRole.ADMIN and can_resolve(domain, from_state, to_state):
        return
    raise InvalidTransitionError(
        current_status=_status(from_state),
        target_status=_status(to_state),
        allowed_transitions=allowed_transitions(domain, from_state, actor_role),
    )
