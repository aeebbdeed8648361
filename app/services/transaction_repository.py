"""Persistence collaborator for transactions under status control."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.transaction import TransactionDomain
from app.models.booking import Booking
from app.models.listing import Listing
from app.models.sale import SaleTransaction


class TransactionRepository:
    """Loads transactions and applies conditional, single-statement updates."""

    domain: TransactionDomain
    model: type
    resource_name: str
    resource_type: str

    async def find_by_id(self, db: AsyncSession, transaction_id: UUID) -> Any | None:
        """Fetch the current row, bypassing any stale copy in the session."""
        result = await db.execute(
            select(self.model)
            .where(self.model.id == transaction_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update_if_status(
        self,
        db: AsyncSession,
        transaction_id: UUID,
        expected_status: str,
        fields: dict[str, Any],
        append_note: str | None = None,
        now: datetime | None = None,
    ) -> Any | None:
        """Write ``fields`` only if the row is still in ``expected_status``.

        Returns the refreshed row, or None when the row changed underneath
        (or vanished). Notes are appended on the database side; ``updated_at``
        is stamped with ``now`` so it matches the state timestamps in ``fields``.
        """
        values = dict(fields)
        values["updated_at"] = now or datetime.now(UTC)
        if append_note:
            values["notes"] = case(
                (self.model.notes.is_(None), append_note),
                else_=self.model.notes + ("\n" + append_note),
            )

        result = await db.execute(
            update(self.model)
            .where(self.model.id == transaction_id, self.model.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None

        await self._after_update(db, transaction_id, values)
        return await self.find_by_id(db, transaction_id)

    async def _after_update(self, db: AsyncSession, transaction_id: UUID, values: dict[str, Any]) -> None:
        """Extra writes that belong to the same unit of work."""


class BookingRepository(TransactionRepository):
    domain = TransactionDomain.BOOKING
    model = Booking
    resource_name = "Booking"
    resource_type = "booking"


class SaleTransactionRepository(TransactionRepository):
    domain = TransactionDomain.SALE
    model = SaleTransaction
    resource_name = "Sale transaction"
    resource_type = "sale_transaction"

    async def _after_update(self, db: AsyncSession, transaction_id: UUID, values: dict[str, Any]) -> None:
        if values.get("status") == "Completed":
            listing_id = (
                select(SaleTransaction.listing_id)
                .where(SaleTransaction.id == transaction_id)
                .scalar_subquery()
            )
            await db.execute(
                update(Listing)
                .where(Listing.id == listing_id)
                .values(sale_status="Sold")
                .execution_options(synchronize_session=False)
            )


booking_repository = BookingRepository()
sale_repository = SaleTransactionRepository()
