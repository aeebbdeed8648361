"""In-app notification service."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.notification import Notification


class NotificationService:
    """Creates and manages in-app notifications."""

    BOOKING_UPDATE = "BOOKING_UPDATE"
    SALE_UPDATE = "SALE_UPDATE"
    SALE_OFFER_UPDATE = "SALE_OFFER_UPDATE"
    SALE_TRANSFER_CONFIRMATION = "SALE_TRANSFER_CONFIRMATION"

    async def create_notification(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        body: str,
        notification_type: str,
        booking_id: UUID | None = None,
        sale_transaction_id: UUID | None = None,
    ) -> Notification:
        """Create an in-app notification.

        Args:
            db: Database session
            user_id: User to notify
            title: Notification title
            body: Notification body text
            notification_type: Type of notification
            booking_id: Related booking ID
            sale_transaction_id: Related sale transaction ID

        Returns:
            Notification: Created notification
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            body=body,
            notification_type=notification_type,
            booking_id=booking_id,
            sale_transaction_id=sale_transaction_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Notification], int, int]:
        """Return (page of notifications, total matching, unread count)."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read == False)  # noqa: E712

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        unread_result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
        )
        unread_count = unread_result.scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            query.order_by(Notification.created_at.desc()).offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total, unread_count

    async def _get_owned(self, db: AsyncSession, user_id: UUID, notification_id: UUID) -> Notification:
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", str(notification_id))
        return notification

    async def mark_read(self, db: AsyncSession, user_id: UUID, notification_id: UUID) -> Notification:
        notification = await self._get_owned(db, user_id, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
        await db.flush()
        return notification

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
            .values(is_read=True, read_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete(self, db: AsyncSession, user_id: UUID, notification_id: UUID) -> None:
        notification = await self._get_owned(db, user_id, notification_id)
        await db.execute(delete(Notification).where(Notification.id == notification.id))


# Singleton instance
notification_service = NotificationService()
