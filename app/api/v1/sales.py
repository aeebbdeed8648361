"""Sale transaction endpoints."""

from uuid import UUID

from fastapi import APIRouter

from app.api.deps import CurrentUser, DbSession, SaleExecutor, ensure_actor_matches
from app.api.v1.bookings import TRANSITION_ERRORS
from app.domain.transaction import TransitionPayload
from app.schemas.sale import (
    OfferUpdateRequest,
    OfferUpdateResponse,
    SaleTransactionResponse,
    TransferConfirmRequest,
    TransferConfirmResponse,
)
from app.schemas.transition import SaleTransitionRequest, TransitionResponse
from app.services.sale_service import sale_service

router = APIRouter()


@router.get("/{sale_id}", response_model=SaleTransactionResponse)
async def get_sale(sale_id: UUID, current_user: CurrentUser, db: DbSession) -> dict:
    """Sale transaction. Seller location is withheld until payment clears."""
    return await sale_service.get_sale_view(db, sale_id, current_user)


@router.api_route(
    "/{sale_id}/status",
    methods=["PUT", "POST"],
    response_model=TransitionResponse,
    responses=TRANSITION_ERRORS,
)
async def update_sale_status(
    sale_id: UUID,
    request: SaleTransitionRequest,
    current_user: CurrentUser,
    db: DbSession,
    executor: SaleExecutor,
) -> TransitionResponse:
    ensure_actor_matches(request.actor_id, request.new_status, current_user)

    result = await executor.apply_transition(
        db,
        sale_id,
        request.new_status,
        current_user.id,
        TransitionPayload(
            reason=request.reason,
            notes=request.notes,
            data=request.transition_data(),
        ),
        is_admin=current_user.is_admin,
    )
    return TransitionResponse.from_result(result, "Sale")


@router.post("/{sale_id}/offer", response_model=OfferUpdateResponse, responses=TRANSITION_ERRORS)
async def update_offer(
    sale_id: UUID,
    request: OfferUpdateRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> OfferUpdateResponse:
    """Raise or counter the offer while it is pending."""
    sale = await sale_service.update_offer(
        db, sale_id, current_user, request.offer_amount, note=request.notes
    )
    return OfferUpdateResponse(
        id=sale.id,
        status=sale.status,
        offer_amount=sale.offer_amount,
        updated_at=sale.updated_at,
    )


@router.post("/{sale_id}/confirm", response_model=TransferConfirmResponse, responses=TRANSITION_ERRORS)
async def confirm_transfer(
    sale_id: UUID,
    request: TransferConfirmRequest,
    current_user: CurrentUser,
    db: DbSession,
    executor: SaleExecutor,
) -> TransferConfirmResponse:
    """Confirm the equipment handover. The second confirmation completes the sale."""
    sale, result = await sale_service.confirm_transfer(
        db, sale_id, current_user, executor, notes=request.notes
    )
    return TransferConfirmResponse(
        id=sale.id,
        status=sale.status,
        buyer_confirmed=sale.buyer_confirmed_at is not None,
        seller_confirmed=sale.seller_confirmed_at is not None,
        completed=result is not None,
        transition=TransitionResponse.from_result(result, "Sale") if result else None,
    )
