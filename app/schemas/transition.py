"""Wire contract for status transition requests."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TransitionRequest(BaseModel):
    """Body of ``PUT|POST /{domain}/{id}/status``."""

    model_config = ConfigDict(populate_by_name=True)

    new_status: str = Field(..., alias="newStatus", min_length=1, max_length=30)
    actor_id: str | None = Field(None, alias="actorId", max_length=64)
    reason: str | None = Field(None, max_length=1000)
    notes: str | None = Field(None, max_length=2000)


class SaleTransitionRequest(TransitionRequest):
    """Sale transitions may carry payment and transfer details."""

    final_price: int | None = Field(None, alias="finalPrice", gt=0)
    payment_method: str | None = Field(None, alias="paymentMethod", max_length=30)
    payment_intent_id: str | None = Field(None, alias="paymentIntentId", max_length=100)
    transfer_method: str | None = Field(
        None, alias="transferMethod", pattern="^(pickup|delivery|freight)$"
    )
    tracking_number: str | None = Field(None, alias="trackingNumber", max_length=100)
    carrier: str | None = Field(None, max_length=50)

    def transition_data(self) -> dict[str, Any]:
        data = {
            "final_price": self.final_price,
            "payment_method": self.payment_method,
            "payment_intent_id": self.payment_intent_id,
            "transfer_method": self.transfer_method,
            "tracking_number": self.tracking_number,
            "carrier": self.carrier,
        }
        return {key: value for key, value in data.items() if value is not None}


class InternalTransitionRequest(BaseModel):
    """System-actor transition relayed by webhooks and schedulers."""

    model_config = ConfigDict(populate_by_name=True)

    new_status: str = Field(..., alias="newStatus", min_length=1, max_length=30)
    reason: str | None = Field(None, max_length=1000)
    notes: str | None = Field(None, max_length=2000)
    data: dict[str, Any] = Field(default_factory=dict)


class TransitionResponse(BaseModel):
    success: bool = True
    id: UUID
    previous_status: str = Field(..., serialization_alias="previousStatus")
    current_status: str = Field(..., serialization_alias="currentStatus")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")
    message: str

    @classmethod
    def from_result(cls, result, noun: str) -> "TransitionResponse":
        return cls(
            id=result.id,
            previous_status=result.previous_status,
            current_status=result.current_status,
            updated_at=result.updated_at,
            message=f"{noun} status updated from {result.previous_status} to {result.current_status}",
        )


class TransitionErrorResponse(BaseModel):
    """Documented shape of transition failures (400/403/404/409)."""

    success: bool = False
    error: str
    message: str
    allowed_transitions: list[str] | None = Field(None, serialization_alias="allowedTransitions")
