"""Sale transaction Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.transition import TransitionResponse


class SalePermissions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    can_transition_to: list[str] = Field(..., alias="canTransitionTo")
    is_terminal: bool = Field(..., alias="isTerminal")
    messaging_enabled: bool = Field(..., alias="messagingEnabled")
    address_masked: bool = Field(..., alias="addressMasked")
    funds_in_escrow: bool = Field(..., alias="fundsInEscrow")
    payout_released: bool = Field(..., alias="payoutReleased")
    listing_hidden: bool = Field(..., alias="listingHidden")
    can_confirm_receipt: bool = Field(..., alias="canConfirmReceipt")


class SaleTransactionResponse(BaseModel):
    """Sale read model. Location and phone are null while ``address_masked``."""

    id: UUID
    status: str
    status_label: str
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

    seller_id: UUID
    seller_name: str | None
    seller_phone: str | None
    buyer_id: UUID
    buyer_name: str | None

    asking_price: int
    offer_amount: int | None
    final_price: int | None
    seller_commission_amount: int | None
    seller_payout_amount: int | None
    currency: str

    payment_method: str | None
    transfer_method: str | None
    shipping_tracking_number: str | None
    shipping_carrier: str | None
    buyer_confirmed_at: datetime | None
    seller_confirmed_at: datetime | None
    notes: str | None

    offer_accepted_at: datetime | None
    paid_at: datetime | None
    completed_at: datetime | None
    canceled_at: datetime | None
    created_at: datetime
    updated_at: datetime

    permissions: SalePermissions


class OfferUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    offer_amount: int = Field(..., alias="offerAmount", gt=0)
    notes: str | None = Field(None, max_length=1000)


class OfferUpdateResponse(BaseModel):
    success: bool = True
    id: UUID
    status: str
    offer_amount: int = Field(..., serialization_alias="offerAmount")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")


class TransferConfirmRequest(BaseModel):
    notes: str | None = Field(None, max_length=1000)


class TransferConfirmResponse(BaseModel):
    success: bool = True
    id: UUID
    status: str
    buyer_confirmed: bool = Field(..., serialization_alias="buyerConfirmed")
    seller_confirmed: bool = Field(..., serialization_alias="sellerConfirmed")
    completed: bool
    transition: TransitionResponse | None = None
