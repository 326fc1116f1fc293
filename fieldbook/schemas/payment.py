"""Payment-related Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PaymentCreate(BaseModel):
    """Schema for recording a payment against a booking."""

    booking_id: int = Field(..., ge=1)
    method: Literal["cash", "transfer", "ewallet", "card"]
    amount: int | None = Field(None, gt=0)  # defaults to the booking total
    admin_fee: int = Field(default=0, ge=0)
    provider: str | None = Field(None, max_length=50)
    external_reference: str | None = Field(None, max_length=255)
    notes: str | None = Field(None, max_length=1000)


class PaymentMarkPaidRequest(BaseModel):
    """Schema for confirming a pending payment."""

    external_reference: str | None = Field(None, max_length=255)
    gateway_response: dict | None = None


class PaymentFailRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class PaymentRefundRequest(BaseModel):
    """Schema for refunding a paid payment."""

    reason: str = Field(..., min_length=1, max_length=500)


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: UUID
    payment_number: str
    booking_id: int
    method: str
    provider: str | None
    amount: int
    admin_fee: int
    total_amount: int
    status: str
    external_reference: str | None
    notes: str | None
    processed_by: int | None
    expires_at: datetime | None
    paid_at: datetime | None
    failed_at: datetime | None
    refunded_at: datetime | None
    created_at: datetime
