"""Transition table lookups for both domains."""

import pytest

from app.core.exceptions import InvalidTransitionError
from app.domain.booking_state import BOOKING_TRANSITIONS, BookingStatus
from app.domain.sale_state import SALE_TRANSITIONS, SaleStatus
from app.domain.transaction import ActorRole, TransactionDomain
from app.domain.transitions import (
    allowed_transitions,
    assert_transition,
    can_resolve,
    can_transition,
    is_known_status,
    is_terminal,
)

BOOKING = TransactionDomain.BOOKING
SALE = TransactionDomain.SALE

BOOKING_EDGES = [(src, dst) for src, targets in BOOKING_TRANSITIONS.items() for dst in targets]
SALE_EDGES = [(src, dst) for src, targets in SALE_TRANSITIONS.items() for dst in targets]


class TestBookingTable:

    @pytest.mark.parametrize("from_state,to_state", BOOKING_EDGES)
    def test_listed_edges_are_allowed(self, from_state, to_state):
        assert can_transition(BOOKING, from_state, to_state)

    def test_every_status_has_a_row(self):
        assert set(BOOKING_TRANSITIONS) == {status.value for status in BookingStatus}

    @pytest.mark.parametrize("state", ["DECLINED", "CANCELED", "EXPIRED", "DISPUTED"])
    def test_terminal_states(self, state):
        assert is_terminal(BOOKING, state)
        assert allowed_transitions(BOOKING, state) == []

    def test_completed_can_only_be_disputed(self):
        assert not is_terminal(BOOKING, "COMPLETED")
        assert allowed_transitions(BOOKING, "COMPLETED") == ["DISPUTED"]

    @pytest.mark.parametrize(
        "from_state,to_state",
        [
            ("PENDING", "PAID"),
            ("PENDING", "COMPLETED"),
            ("HOST_APPROVED", "IN_PROGRESS"),
            ("IN_PROGRESS", "CANCELED"),
            ("COMPLETED", "PENDING"),
            ("CANCELED", "PENDING"),
        ],
    )
    def test_skips_and_reversals_are_rejected(self, from_state, to_state):
        assert not can_transition(BOOKING, from_state, to_state)

    def test_accepts_enum_members(self):
        assert can_transition(BOOKING, BookingStatus.PENDING, BookingStatus.HOST_APPROVED)


class TestSaleTable:

    @pytest.mark.parametrize("from_state,to_state", SALE_EDGES)
    def test_listed_edges_are_allowed(self, from_state, to_state):
        assert can_transition(SALE, from_state, to_state)

    def test_every_status_has_a_row(self):
        assert set(SALE_TRANSITIONS) == {status.value for status in SaleStatus}

    def test_paid_cannot_be_canceled(self):
        assert not can_transition(SALE, "Paid", "Canceled")
        assert allowed_transitions(SALE, "Paid") == ["InTransfer", "Disputed"]

    @pytest.mark.parametrize("state", ["Completed", "Canceled", "Disputed"])
    def test_terminal_states(self, state):
        assert is_terminal(SALE, state)


class TestSelfTransitions:

    @pytest.mark.parametrize("state", list(BOOKING_TRANSITIONS))
    def test_booking_self_transition_rejected(self, state):
        assert not can_transition(BOOKING, state, state)

    @pytest.mark.parametrize("state", list(SALE_TRANSITIONS))
    def test_sale_self_transition_rejected(self, state):
        assert not can_transition(SALE, state, state)


class TestUnknownAndCrossDomainStates:

    def test_unknown_from_state_never_advances(self):
        assert not can_transition(BOOKING, "ARCHIVED", "PENDING")
        assert allowed_transitions(BOOKING, "ARCHIVED") == []
        assert not is_known_status(BOOKING, "ARCHIVED")

    def test_domains_do_not_share_vocabulary(self):
        assert not is_known_status(BOOKING, "Paid")
        assert not is_known_status(SALE, "PAID")
        assert not can_transition(SALE, "PAID", "IN_PROGRESS")

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            BOOKING_TRANSITIONS["PENDING"] = ("COMPLETED",)


class TestDisputeResolution:

    def test_resolution_edges_are_admin_only(self):
        assert can_resolve(SALE, "Disputed", "Completed")
        assert not can_transition(SALE, "Disputed", "Completed")

        assert_transition(SALE, "Disputed", "Canceled", ActorRole.ADMIN)
        with pytest.raises(InvalidTransitionError):
            assert_transition(SALE, "Disputed", "Canceled", ActorRole.BUYER)

    def test_admin_sees_resolution_targets(self):
        assert allowed_transitions(SALE, "Disputed") == []
        assert allowed_transitions(SALE, "Disputed", ActorRole.ADMIN) == ["Completed", "Canceled"]

    def test_booking_disputes_have_no_resolution_edges(self):
        with pytest.raises(InvalidTransitionError):
            assert_transition(BOOKING, "DISPUTED", "COMPLETED", ActorRole.ADMIN)


class TestAssertTransition:

    def test_error_carries_allowed_targets(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            assert_transition(BOOKING, "COMPLETED", "PENDING")

        error = exc_info.value
        assert error.status_code == 400
        assert error.allowed_transitions == ["DISPUTED"]
        assert error.to_payload() == {
            "success": False,
            "error": "INVALID_TRANSITION",
            "message": "Cannot transition from COMPLETED to PENDING",
            "allowedTransitions": ["DISPUTED"],
        }

    def test_valid_edge_returns_none(self):
        assert assert_transition(SALE, "OfferPending", "OfferAccepted") is None
