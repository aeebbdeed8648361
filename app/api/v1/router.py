"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import bookings, internal, notifications, sales

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Sales
api_router.include_router(sales.router, prefix="/sales", tags=["Sales"])

# Notifications
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

# Internal
api_router.include_router(internal.router, prefix="/internal", tags=["Internal"])
