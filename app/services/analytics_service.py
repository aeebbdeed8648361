"""Product analytics recording. Failures here never affect callers' outcomes."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import AnalyticsEvent


class AnalyticsService:

    async def record(
        self,
        db: AsyncSession,
        event_type: str,
        actor_id: str | None = None,
        listing_id: UUID | None = None,
        booking_id: UUID | None = None,
        sale_transaction_id: UUID | None = None,
        properties: dict[str, Any] | None = None,
    ) -> AnalyticsEvent:
        event = AnalyticsEvent(
            event_type=event_type,
            actor_id=actor_id,
            listing_id=listing_id,
            booking_id=booking_id,
            sale_transaction_id=sale_transaction_id,
            properties=properties,
        )
        db.add(event)
        await db.flush()
        return event


analytics_service = AnalyticsService()
