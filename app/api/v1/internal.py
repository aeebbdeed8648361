"""Internal endpoints for system-actor transitions.

Used by the payment webhook relay and operators. Callers authenticate with
the shared ``X-Internal-Key`` header instead of a user token.
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import BookingExecutor, DbSession, SaleExecutor, verify_internal_key
from app.api.v1.bookings import TRANSITION_ERRORS
from app.domain.transaction import SYSTEM_ACTOR_ID, TransactionDomain, TransitionPayload
from app.schemas.transition import InternalTransitionRequest, TransitionResponse

router = APIRouter(dependencies=[Depends(verify_internal_key)])


@router.post(
    "/{domain}/{transaction_id}/transitions",
    response_model=TransitionResponse,
    responses=TRANSITION_ERRORS,
)
async def apply_system_transition(
    domain: TransactionDomain,
    transaction_id: UUID,
    request: InternalTransitionRequest,
    db: DbSession,
    booking_executor: BookingExecutor,
    sale_executor: SaleExecutor,
) -> TransitionResponse:
    """Apply a transition as the system actor (payment cleared, rental started, ...)."""
    if domain is TransactionDomain.BOOKING:
        executor, noun = booking_executor, "Booking"
    else:
        executor, noun = sale_executor, "Sale"

    result = await executor.apply_transition(
        db,
        transaction_id,
        request.new_status,
        SYSTEM_ACTOR_ID,
        TransitionPayload(reason=request.reason, notes=request.notes, data=request.data),
    )
    return TransitionResponse.from_result(result, noun)
