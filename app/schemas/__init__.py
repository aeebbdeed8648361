"""Pydantic schemas for API validation."""

from app.schemas.booking import BookingLocationResponse, BookingPermissions, BookingResponse
from app.schemas.notification import NotificationListResponse, NotificationResponse
from app.schemas.sale import (
    OfferUpdateRequest,
    OfferUpdateResponse,
    SalePermissions,
    SaleTransactionResponse,
    TransferConfirmRequest,
    TransferConfirmResponse,
)
from app.schemas.transition import (
    InternalTransitionRequest,
    SaleTransitionRequest,
    TransitionErrorResponse,
    TransitionRequest,
    TransitionResponse,
)

__all__ = [
    # Booking
    "BookingLocationResponse",
    "BookingPermissions",
    "BookingResponse",
    # Sale
    "SalePermissions",
    "SaleTransactionResponse",
    "OfferUpdateRequest",
    "OfferUpdateResponse",
    "TransferConfirmRequest",
    "TransferConfirmResponse",
    # Transitions
    "TransitionRequest",
    "SaleTransitionRequest",
    "InternalTransitionRequest",
    "TransitionResponse",
    "TransitionErrorResponse",
    # Notifications
    "NotificationResponse",
    "NotificationListResponse",
]
