"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BookingPermissions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    can_transition_to: list[str] = Field(..., alias="canTransitionTo")
    is_terminal: bool = Field(..., alias="isTerminal")
    messaging_enabled: bool = Field(..., alias="messagingEnabled")
    address_masked: bool = Field(..., alias="addressMasked")
    calendar_locked: bool = Field(..., alias="calendarLocked")
    payout_released: bool = Field(..., alias="payoutReleased")


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    listing_id: UUID
    renter_id: UUID
    host_id: UUID
    status: str
    status_label: str
    viewer_role: str
    start_date: date
    end_date: date
    total_price: int
    currency: str
    notes: str | None
    responded_at: datetime | None
    paid_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    cancellation_by: str | None
    cancellation_reason: str | None
    created_at: datetime
    updated_at: datetime
    permissions: BookingPermissions


class BookingLocationResponse(BaseModel):
    """Pickup location. Address and coordinates are null while ``address_masked``."""

    booking_id: UUID
    status: str
    viewer_role: str
    address_masked: bool

    listing_id: UUID
    listing_title: str
    city: str | None
    state: str | None
    full_street_address: str | None
    postal_code: str | None
    latitude: Decimal | None
    longitude: Decimal | None

    start_date: date
    end_date: date
