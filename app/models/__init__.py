"""Database models."""

from app.models.admin import AnalyticsEvent, AuditLog
from app.models.booking import Booking
from app.models.listing import Listing
from app.models.notification import Notification
from app.models.sale import SaleTransaction
from app.models.user import User

__all__ = [
    # User
    "User",
    # Listing
    "Listing",
    # Transactions
    "Booking",
    "SaleTransaction",
    # Notifications
    "Notification",
    # Audit / analytics
    "AuditLog",
    "AnalyticsEvent",
]
