"""Pydantic schemas for the payments service."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.delivery_service.schemas import (
    Address,
    DeliveryChoice,
    DeliveryQuote,
    PackageDetails,
)
from services.payments_service.models import (
    PaymentStatus,
    PayoutMethod,
    PayoutStatus,
    SettlementMode,
)

# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class CheckoutInitializeRequest(BaseModel):
    book_id: uuid.UUID
    shipping_address: Address
    delivery: DeliveryChoice
    package_details: Optional[PackageDetails] = None
    email: Optional[EmailStr] = Field(
        None, description="Receipt email; defaults to the account email"
    )


class SplitBreakdownResponse(BaseModel):
    book_price_cents: int
    delivery_fee_cents: int
    platform_fee_cents: int
    seller_amount_cents: int
    total_cents: int
    platform_charge_cents: int


class CheckoutInitializeResponse(BaseModel):
    reference: str
    authorization_url: str
    access_code: str
    breakdown: SplitBreakdownResponse
    delivery_quote: DeliveryQuote


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reference: str
    book_id: uuid.UUID
    book_title: str
    buyer_auth_id: str
    seller_auth_id: str
    book_price_cents: int
    delivery_fee_cents: int
    platform_fee_cents: int
    seller_amount_cents: int
    total_cents: int
    currency: str
    status: PaymentStatus
    settlement_mode: SettlementMode
    paid_at: Optional[datetime] = None
    order_id: Optional[uuid.UUID] = None
    fulfillment_error: Optional[str] = None
    refunded_amount_cents: Optional[int] = None
    refunded_at: Optional[datetime] = None
    created_at: datetime


class PayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    payment_reference: str
    seller_auth_id: str
    amount_cents: int
    currency: str
    method: PayoutMethod
    status: PayoutStatus
    transfer_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    attempts: int
    paid_at: Optional[datetime] = None
    created_at: datetime


class AdminRefundRequest(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)
