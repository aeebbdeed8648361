"""Sale reads, offer updates and dual transfer confirmation."""

import uuid

import pytest
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.exceptions import (
    AuthorizationError,
    InvalidTransactionStatus,
    TransactionNotFoundError,
    UnauthorizedTransitionError,
)
from app.models import AuditLog, Listing, Notification, SaleTransaction
from app.services.notification_service import NotificationService
from app.services.sale_service import SaleService, format_amount
from tests.conftest import FailingAuditService


@pytest.fixture
def service(audit_retries):
    return SaleService(enqueue_audit_retry=audit_retries)


async def notifications_for(db, user_id):
    result = await db.execute(select(Notification).where(Notification.user_id == user_id))
    return list(result.scalars().all())


def test_format_amount():
    assert format_amount(4_100_000) == "$41,000.00"
    assert format_amount(99) == "$0.99"


class TestSaleView:

    async def test_location_masked_before_payment(self, db, make_sale, seller, buyer, service, sale_executor):
        sale = await make_sale()
        await sale_executor.apply_transition(db, sale.id, "OfferAccepted", seller.id)

        view = await service.get_sale_view(db, sale.id, buyer)

        assert view["status"] == "OfferAccepted"
        assert view["viewer_role"] == "buyer"
        assert view["address_masked"] is True
        assert view["full_street_address"] is None
        assert view["postal_code"] is None
        assert view["latitude"] is None
        assert view["seller_phone"] is None
        assert view["city"] == "Austin"
        assert view["permissions"]["canTransitionTo"] == ["PaymentPending", "Canceled"]

    async def test_location_revealed_once_paid(self, db, make_sale, buyer, service):
        sale = await make_sale(status="Paid")

        view = await service.get_sale_view(db, sale.id, buyer)

        assert view["address_masked"] is False
        assert view["full_street_address"] == "500 Congress Ave"
        assert view["seller_phone"] == "512-555-0199"
        assert view["permissions"]["fundsInEscrow"] is True

    async def test_admin_may_read(self, db, make_sale, admin, service):
        sale = await make_sale()
        view = await service.get_sale_view(db, sale.id, admin)
        assert view["viewer_role"] == "admin"

    async def test_outsider_may_not_read(self, db, make_sale, outsider, service):
        sale = await make_sale()
        with pytest.raises(AuthorizationError):
            await service.get_sale_view(db, sale.id, outsider)

    async def test_unknown_sale(self, db, buyer, service):
        with pytest.raises(TransactionNotFoundError):
            await service.get_sale_view(db, uuid.uuid4(), buyer)


class TestOfferUpdates:

    async def test_buyer_raises_offer(self, db, make_sale, seller, buyer, service):
        sale = await make_sale()

        updated = await service.update_offer(db, sale.id, buyer, 4_350_000, note="Can pick up Friday")

        assert updated.offer_amount == 4_350_000
        assert updated.status == "OfferPending"
        assert updated.notes == "Buyer updated offer to $43,500.00: Can pick up Friday"

        [notification] = await notifications_for(db, seller.id)
        assert notification.notification_type == NotificationService.SALE_OFFER_UPDATE
        assert notification.body == "Buyer updated offer to $43,500.00"

        [entry] = (await db.execute(select(AuditLog))).scalars().all()
        assert entry.action == "sale_offer_updated"
        assert entry.old_values["offer_amount"] == 4_200_000
        assert entry.new_values["offer_amount"] == 4_350_000

    async def test_seller_counters(self, db, make_sale, seller, buyer, service):
        sale = await make_sale()

        updated = await service.update_offer(db, sale.id, seller, 4_400_000)

        assert updated.notes == "Seller counter-offered $44,000.00"
        assert len(await notifications_for(db, buyer.id)) == 1

    async def test_only_while_offer_pending(self, db, make_sale, buyer, service):
        sale = await make_sale(status="OfferAccepted")

        with pytest.raises(InvalidTransactionStatus):
            await service.update_offer(db, sale.id, buyer, 4_350_000)

    async def test_outsider_cannot_update(self, db, make_sale, outsider, service):
        sale = await make_sale()

        with pytest.raises(UnauthorizedTransitionError):
            await service.update_offer(db, sale.id, outsider, 1_000)

    async def test_failed_audit_is_queued(self, db, make_sale, buyer, audit_retries):
        sale = await make_sale()
        service = SaleService(audit=FailingAuditService(), enqueue_audit_retry=audit_retries)

        await service.update_offer(db, sale.id, buyer, 4_300_000)

        [entry] = audit_retries.entries
        assert entry["action"] == "sale_offer_updated"
        assert entry["resource_id"] == str(sale.id)

    async def test_lost_side_effect_commit_queues_the_audit_entry(
        self, engine, db, make_sale, buyer, service, audit_retries
    ):
        sale = await make_sale()
        sale_id = sale.id
        buyer_id = buyer.id
        outer_commits = []

        def fail_side_effect_commit(session):
            if session.in_nested_transaction():
                return
            outer_commits.append(session)
            # the first outer commit is the offer write itself
            if len(outer_commits) == 2:
                raise RuntimeError("disk I/O error")

        event.listen(db.sync_session, "before_commit", fail_side_effect_commit)
        await service.update_offer(db, sale_id, buyer, 4_300_000)
        event.remove(db.sync_session, "before_commit", fail_side_effect_commit)

        [entry] = audit_retries.entries
        assert entry["action"] == "sale_offer_updated"
        assert entry["actor_id"] == str(buyer_id)

        async with async_sessionmaker(engine)() as fresh:
            stored = (await fresh.execute(select(SaleTransaction).where(SaleTransaction.id == sale_id))).scalar_one()
            assert stored.offer_amount == 4_300_000
            assert (await fresh.execute(select(AuditLog))).scalars().all() == []


class TestTransferConfirmation:

    async def test_first_confirmation_waits_for_the_other_party(self, db, make_sale, seller, buyer, service, sale_executor):
        sale = await make_sale(status="InTransfer")

        updated, result = await service.confirm_transfer(db, sale.id, buyer, sale_executor)

        assert result is None
        assert updated.status == "InTransfer"
        assert updated.buyer_confirmed_at is not None
        assert updated.seller_confirmed_at is None
        [notification] = await notifications_for(db, seller.id)
        assert notification.notification_type == NotificationService.SALE_TRANSFER_CONFIRMATION

    async def test_second_confirmation_completes_the_sale(self, db, make_sale, seller, buyer, service, sale_executor):
        sale = await make_sale(status="InTransfer")

        await service.confirm_transfer(db, sale.id, buyer, sale_executor)
        completed, result = await service.confirm_transfer(
            db, sale.id, seller, sale_executor, notes="Keys handed over"
        )

        assert result is not None
        assert result.previous_status == "InTransfer"
        assert completed.status == "Completed"
        assert completed.escrow_released_at is not None
        assert completed.notes == "Keys handed over"
        sale_status = (
            await db.execute(select(Listing.sale_status).where(Listing.id == sale.listing_id))
        ).scalar_one()
        assert sale_status == "Sold"

    async def test_confirmation_is_write_once(self, db, make_sale, buyer, service, sale_executor):
        sale = await make_sale(status="InTransfer")
        await service.confirm_transfer(db, sale.id, buyer, sale_executor)

        with pytest.raises(InvalidTransactionStatus):
            await service.confirm_transfer(db, sale.id, buyer, sale_executor)

    async def test_only_while_in_transfer(self, db, make_sale, buyer, service, sale_executor):
        sale = await make_sale(status="Paid")

        with pytest.raises(InvalidTransactionStatus):
            await service.confirm_transfer(db, sale.id, buyer, sale_executor)
