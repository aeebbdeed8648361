"""Role derivation and the per-target authorization rules."""

import logging
import uuid
from types import SimpleNamespace

import pytest

from app.domain.authorization import (
    authorize,
    derive_role,
    describe_allowed_roles,
    notification_recipients,
)
from app.domain.transaction import SYSTEM_ACTOR_ID, ActorRole, TransactionDomain

BOOKING = TransactionDomain.BOOKING
SALE = TransactionDomain.SALE

HOST_ID = uuid.uuid4()
RENTER_ID = uuid.uuid4()
SELLER_ID = uuid.uuid4()
BUYER_ID = uuid.uuid4()


@pytest.fixture
def booking():
    return SimpleNamespace(host_id=HOST_ID, renter_id=RENTER_ID)


@pytest.fixture
def sale():
    return SimpleNamespace(seller_id=SELLER_ID, buyer_id=BUYER_ID)


class TestDeriveRole:

    def test_counterparties(self, booking, sale):
        assert derive_role(BOOKING, booking, HOST_ID) is ActorRole.HOST
        assert derive_role(BOOKING, booking, RENTER_ID) is ActorRole.RENTER
        assert derive_role(SALE, sale, SELLER_ID) is ActorRole.SELLER
        assert derive_role(SALE, sale, BUYER_ID) is ActorRole.BUYER

    def test_string_and_uuid_ids_compare_equal(self, booking):
        assert derive_role(BOOKING, booking, str(HOST_ID)) is ActorRole.HOST

    def test_system_actor(self, booking):
        assert derive_role(BOOKING, booking, SYSTEM_ACTOR_ID) is ActorRole.SYSTEM

    def test_admin_flag_only_applies_to_non_parties(self, booking):
        assert derive_role(BOOKING, booking, uuid.uuid4(), is_admin=True) is ActorRole.ADMIN
        assert derive_role(BOOKING, booking, HOST_ID, is_admin=True) is ActorRole.HOST

    def test_anyone_else_is_an_outsider(self, booking, sale):
        assert derive_role(BOOKING, booking, uuid.uuid4()) is ActorRole.OUTSIDER
        assert derive_role(SALE, sale, None) is ActorRole.OUTSIDER
        # a host id means nothing on a sale
        assert derive_role(SALE, sale, HOST_ID) is ActorRole.OUTSIDER


class TestBookingRules:

    @pytest.mark.parametrize(
        "target,role,expected",
        [
            ("HOST_APPROVED", ActorRole.HOST, True),
            ("HOST_APPROVED", ActorRole.RENTER, False),
            ("DECLINED", ActorRole.HOST, True),
            ("DECLINED", ActorRole.RENTER, False),
            ("PAID", ActorRole.RENTER, True),
            ("PAID", ActorRole.SYSTEM, True),
            ("PAID", ActorRole.HOST, False),
            ("IN_PROGRESS", ActorRole.HOST, True),
            ("IN_PROGRESS", ActorRole.SYSTEM, True),
            ("IN_PROGRESS", ActorRole.RENTER, False),
            ("COMPLETED", ActorRole.RENTER, True),
            ("CANCELED", ActorRole.HOST, True),
            ("DISPUTED", ActorRole.RENTER, True),
            ("DISPUTED", ActorRole.SYSTEM, False),
            ("EXPIRED", ActorRole.SYSTEM, True),
            ("EXPIRED", ActorRole.HOST, False),
            ("CANCELED", ActorRole.OUTSIDER, False),
            ("CANCELED", ActorRole.ADMIN, False),
        ],
    )
    def test_rule(self, target, role, expected):
        assert authorize(BOOKING, target, role) is expected


class TestSaleRules:

    @pytest.mark.parametrize(
        "target,role,expected",
        [
            ("OfferAccepted", ActorRole.SELLER, True),
            ("OfferAccepted", ActorRole.BUYER, False),
            ("PaymentPending", ActorRole.BUYER, True),
            ("PaymentPending", ActorRole.SELLER, False),
            ("Paid", ActorRole.SYSTEM, True),
            ("InTransfer", ActorRole.SELLER, True),
            ("InTransfer", ActorRole.BUYER, False),
            ("Completed", ActorRole.BUYER, True),
            ("Disputed", ActorRole.SELLER, True),
            ("Disputed", ActorRole.ADMIN, False),
            ("Canceled", ActorRole.OUTSIDER, False),
        ],
    )
    def test_rule(self, target, role, expected):
        assert authorize(SALE, target, role) is expected

    @pytest.mark.parametrize("target", ["Canceled", "Completed"])
    def test_admin_override(self, target):
        assert authorize(SALE, target, ActorRole.ADMIN)


class TestFailClosed:

    def test_target_without_rule_is_denied(self, caplog):
        with caplog.at_level(logging.WARNING, logger="app.domain.authorization"):
            assert not authorize(BOOKING, "PENDING", ActorRole.HOST)
        assert "No authorization rule" in caplog.text

    def test_initial_sale_state_has_no_rule(self):
        assert not authorize(SALE, "OfferPending", ActorRole.ADMIN)


class TestRecipients:

    def test_counterparty_actor_notifies_the_other_party(self, booking):
        assert notification_recipients(BOOKING, booking, ActorRole.HOST) == [RENTER_ID]
        assert notification_recipients(BOOKING, booking, ActorRole.RENTER) == [HOST_ID]

    def test_system_actor_notifies_both(self, sale):
        assert notification_recipients(SALE, sale, ActorRole.SYSTEM) == [SELLER_ID, BUYER_ID]


def test_describe_allowed_roles():
    assert describe_allowed_roles(BOOKING, "PAID") == "renter or system"
    assert describe_allowed_roles(SALE, "Canceled") == "buyer or seller or admin"
    assert describe_allowed_roles(BOOKING, "PENDING") == "nobody"
