"""Sale transaction reads, offer updates and transfer confirmation."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.config import settings
from app.core.exceptions import (
    AuthorizationError,
    InvalidTransactionStatus,
    TransactionNotFoundError,
    TransitionConflictError,
    UnauthorizedTransitionError,
)
from app.domain.authorization import derive_role
from app.domain.sale_state import SALE_STATUS_LABELS
from app.domain.transaction import ActorRole, TransactionDomain, TransitionPayload
from app.domain.visibility import project_sale_view, state_permissions
from app.models.listing import Listing
from app.models.sale import SaleTransaction
from app.models.user import User
from app.services.audit_service import AuditService, audit_service
from app.services.notification_service import NotificationService, notification_service
from app.services.transaction_repository import SaleTransactionRepository, sale_repository
from app.services.transition_service import (
    TransitionExecutor,
    TransitionResult,
    commit_side_effects,
    enqueue_audit_retry_task,
    queue_audit_retry,
    run_side_effect,
)

COUNTERPARTY_ROLES = (ActorRole.BUYER, ActorRole.SELLER)


def format_amount(cents: int) -> str:
    return f"${cents / 100:,.2f}"


class SaleService:
    """Sale operations that sit beside the status transitions."""

    def __init__(
        self,
        repository: SaleTransactionRepository = sale_repository,
        notifications: NotificationService = notification_service,
        audit: AuditService = audit_service,
        enqueue_audit_retry: Callable[[dict[str, Any]], None] = enqueue_audit_retry_task,
    ) -> None:
        self.repository = repository
        self.notifications = notifications
        self.audit = audit
        self.enqueue_audit_retry = enqueue_audit_retry

    async def _get_sale(self, db: AsyncSession, sale_id: UUID) -> SaleTransaction:
        sale = await self.repository.find_by_id(db, sale_id)
        if sale is None:
            raise TransactionNotFoundError(self.repository.resource_name, str(sale_id))
        return sale

    def _require_counterparty(self, sale: SaleTransaction, actor: User, action: str) -> ActorRole:
        role = derive_role(TransactionDomain.SALE, sale, actor.id, is_admin=actor.is_admin)
        if role not in COUNTERPARTY_ROLES:
            raise UnauthorizedTransitionError(
                actor_role=role.value,
                target_status=sale.status,
                message=f"Only the buyer or seller can {action}",
            )
        return role

    async def _run_side_effects(
        self,
        db: AsyncSession,
        context: str,
        notify: Callable[[], Awaitable[Any]],
        entry: dict[str, Any],
    ) -> None:
        """Notify and audit after the write committed; a lost audit entry is queued."""
        await run_side_effect(db, "notification", context, notify)
        audit_failed = (
            await run_side_effect(db, "audit", context, lambda: self.audit.append(db, entry))
            is not None
        )
        if await commit_side_effects(db, context) is not None or audit_failed:
            queue_audit_retry(entry, self.enqueue_audit_retry)

    # ==================== READ ====================

    async def get_sale_view(
        self,
        db: AsyncSession,
        sale_id: UUID,
        viewer: User,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Sale read model with location fields withheld until payment clears."""
        seller = aliased(User)
        buyer = aliased(User)
        result = await db.execute(
            select(SaleTransaction, Listing, seller, buyer)
            .join(Listing, Listing.id == SaleTransaction.listing_id)
            .join(seller, seller.id == SaleTransaction.seller_id)
            .join(buyer, buyer.id == SaleTransaction.buyer_id)
            .where(SaleTransaction.id == sale_id)
        )
        row = result.one_or_none()
        if row is None:
            raise TransactionNotFoundError(self.repository.resource_name, str(sale_id))
        sale, listing, seller_user, buyer_user = row

        role = derive_role(TransactionDomain.SALE, sale, viewer.id, is_admin=viewer.is_admin)
        if role not in (ActorRole.BUYER, ActorRole.SELLER, ActorRole.ADMIN):
            raise AuthorizationError("You don't have permission to view this sale")

        view = {
            "id": sale.id,
            "status": sale.status,
            "status_label": SALE_STATUS_LABELS.get(sale.status, sale.status),
            "viewer_role": role.value,
            "listing_id": listing.id,
            "listing_title": listing.title,
            "city": listing.city,
            "state": listing.state,
            "full_street_address": listing.full_street_address,
            "postal_code": listing.postal_code,
            "latitude": listing.latitude,
            "longitude": listing.longitude,
            "seller_id": sale.seller_id,
            "seller_name": seller_user.display_name,
            "seller_phone": seller_user.phone,
            "buyer_id": sale.buyer_id,
            "buyer_name": buyer_user.display_name,
            "asking_price": sale.asking_price,
            "offer_amount": sale.offer_amount,
            "final_price": sale.final_price,
            "seller_commission_amount": sale.seller_commission_amount,
            "seller_payout_amount": sale.seller_payout_amount,
            "currency": sale.currency,
            "payment_method": sale.payment_method,
            "transfer_method": sale.transfer_method,
            "shipping_tracking_number": sale.shipping_tracking_number,
            "shipping_carrier": sale.shipping_carrier,
            "buyer_confirmed_at": sale.buyer_confirmed_at,
            "seller_confirmed_at": sale.seller_confirmed_at,
            "notes": sale.notes,
            "offer_accepted_at": sale.offer_accepted_at,
            "paid_at": sale.paid_at,
            "completed_at": sale.completed_at,
            "canceled_at": sale.canceled_at,
            "created_at": sale.created_at,
            "updated_at": sale.updated_at,
            "permissions": state_permissions(
                TransactionDomain.SALE,
                sale.status,
                sale.completed_at,
                now or datetime.now(UTC),
                timedelta(hours=settings.messaging_grace_period_hours),
            ),
        }
        return project_sale_view(view)

    # ==================== OFFER ====================

    async def update_offer(
        self,
        db: AsyncSession,
        sale_id: UUID,
        actor: User,
        offer_amount: int,
        note: str | None = None,
    ) -> SaleTransaction:
        """Change the offer while it is still pending."""
        sale = await self._get_sale(db, sale_id)
        role = self._require_counterparty(sale, actor, "update the offer")
        if sale.status != "OfferPending":
            raise InvalidTransactionStatus("Can only update offer when in offer pending state")

        previous_offer = sale.offer_amount
        if role is ActorRole.BUYER:
            summary = f"Buyer updated offer to {format_amount(offer_amount)}"
        else:
            summary = f"Seller counter-offered {format_amount(offer_amount)}"
        appended = f"{summary}: {note}" if note else summary

        updated = await self.repository.update_if_status(
            db, sale_id, "OfferPending", {"offer_amount": offer_amount}, append_note=appended
        )
        if updated is None:
            await db.rollback()
            raise TransitionConflictError(str(sale_id), "OfferPending")
        await db.commit()

        recipient = updated.seller_id if role is ActorRole.BUYER else updated.buyer_id
        context = f"{self.repository.resource_type} {sale_id} (offer update)"
        entry = self.audit.build_entry(
            actor_id=str(actor.id),
            action="sale_offer_updated",
            resource_type=self.repository.resource_type,
            resource_id=sale_id,
            old_values={"status": updated.status, "offer_amount": previous_offer},
            new_values={"status": updated.status, "offer_amount": offer_amount},
        )
        await self._run_side_effects(
            db,
            context,
            lambda: self.notifications.create_notification(
                db=db,
                user_id=recipient,
                title="Offer Updated",
                body=summary,
                notification_type=self.notifications.SALE_OFFER_UPDATE,
                sale_transaction_id=sale_id,
            ),
            entry,
        )
        return updated

    # ==================== TRANSFER CONFIRMATION ====================

    async def confirm_transfer(
        self,
        db: AsyncSession,
        sale_id: UUID,
        actor: User,
        executor: TransitionExecutor,
        notes: str | None = None,
    ) -> tuple[SaleTransaction, TransitionResult | None]:
        """Record one party's confirmation; completes the sale once both have confirmed.

        Returns the refreshed sale and, when this confirmation completed the
        sale, the transition result.
        """
        sale = await self._get_sale(db, sale_id)
        role = self._require_counterparty(sale, actor, "confirm the transfer")
        if sale.status != "InTransfer":
            raise InvalidTransactionStatus("Transfer can only be confirmed while in transfer")

        column = "buyer_confirmed_at" if role is ActorRole.BUYER else "seller_confirmed_at"
        if getattr(sale, column) is not None:
            raise InvalidTransactionStatus(f"Transfer already confirmed by {role.value}")

        now = datetime.now(UTC)
        updated = await self.repository.update_if_status(
            db, sale_id, "InTransfer", {column: now}, append_note=notes, now=now
        )
        if updated is None:
            await db.rollback()
            raise TransitionConflictError(str(sale_id), "InTransfer")
        await db.commit()

        if updated.buyer_confirmed_at is not None and updated.seller_confirmed_at is not None:
            result = await executor.apply_transition(
                db,
                sale_id,
                "Completed",
                actor.id,
                TransitionPayload(reason="Both parties confirmed the transfer"),
            )
            return result.transaction, result

        recipient = updated.seller_id if role is ActorRole.BUYER else updated.buyer_id
        body = (
            "The buyer has confirmed receipt. Please confirm to complete the sale."
            if role is ActorRole.BUYER
            else "The seller has confirmed the handover. Please confirm receipt to complete the sale."
        )
        context = f"{self.repository.resource_type} {sale_id} ({role.value} confirmation)"
        entry = self.audit.build_entry(
            actor_id=str(actor.id),
            action="sale_transfer_confirmed",
            resource_type=self.repository.resource_type,
            resource_id=sale_id,
            old_values={"status": updated.status},
            new_values={"status": updated.status, "confirmed_by": role.value},
        )
        await self._run_side_effects(
            db,
            context,
            lambda: self.notifications.create_notification(
                db=db,
                user_id=recipient,
                title="Transfer Confirmation",
                body=body,
                notification_type=self.notifications.SALE_TRANSFER_CONFIRMATION,
                sale_transaction_id=sale_id,
            ),
            entry,
        )
        return updated, None


sale_service = SaleService()
