"""Booking endpoints."""

from uuid import UUID

from fastapi import APIRouter

from app.api.deps import BookingExecutor, CurrentUser, DbSession, ensure_actor_matches
from app.domain.transaction import TransitionPayload
from app.schemas.booking import BookingLocationResponse, BookingResponse
from app.schemas.transition import TransitionErrorResponse, TransitionRequest, TransitionResponse
from app.services.booking_service import booking_service

router = APIRouter()

# Documented failure shapes of every transition route
TRANSITION_ERRORS = {
    code: {"model": TransitionErrorResponse} for code in (400, 403, 404, 409)
}


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: UUID, current_user: CurrentUser, db: DbSession) -> dict:
    """Booking with the actions its status allows. Counterparties and admins only."""
    return await booking_service.get_booking_view(db, booking_id, current_user)


@router.get("/{booking_id}/location", response_model=BookingLocationResponse)
async def get_booking_location(booking_id: UUID, current_user: CurrentUser, db: DbSession) -> dict:
    """Pickup location; address and coordinates stay null until the booking is paid."""
    return await booking_service.get_booking_location(db, booking_id, current_user)


@router.api_route(
    "/{booking_id}/status",
    methods=["PUT", "POST"],
    response_model=TransitionResponse,
    responses=TRANSITION_ERRORS,
)
async def update_booking_status(
    booking_id: UUID,
    request: TransitionRequest,
    current_user: CurrentUser,
    db: DbSession,
    executor: BookingExecutor,
) -> TransitionResponse:
    ensure_actor_matches(request.actor_id, request.new_status, current_user)

    result = await executor.apply_transition(
        db,
        booking_id,
        request.new_status,
        current_user.id,
        TransitionPayload(reason=request.reason, notes=request.notes),
        is_admin=current_user.is_admin,
    )
    return TransitionResponse.from_result(result, "Booking")
