"""Notification inbox schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    notification_type: str
    title: str
    body: str
    booking_id: UUID | None
    sale_transaction_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class NotificationListResponse(BaseModel):
    """One page of the caller's inbox."""

    notifications: list[NotificationResponse]
    total: int
    unread_count: int
    page: int
    page_size: int

    @computed_field
    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total
