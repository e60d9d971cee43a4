"""Pydantic schemas for the orders service."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models import (
    CancellationReason,
    DisputeResolution,
    DisputeStatus,
    DisputeType,
    OrderStatus,
    RefundStatus,
)


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    payment_reference: str
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

    status: OrderStatus
    shipping_address: Optional[dict] = None
    delivery_provider: Optional[str] = None
    delivery_service: Optional[str] = None

    paid_at: datetime
    commit_deadline: datetime
    committed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    decline_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[CancellationReason] = None
    collected_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    refund_status: RefundStatus
    refunded_at: Optional[datetime] = None
    dispute_hold: bool = False
    created_at: datetime


class DeclineOrderRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class CommitOrderResponse(BaseModel):
    order: OrderResponse
    tracking_number: Optional[str] = None


class SweepResult(BaseModel):
    """Result of a cron-triggered sweep."""

    processed: int


class OpenDisputeRequest(BaseModel):
    dispute_type: DisputeType
    description: str = Field(..., min_length=10, max_length=2000)
    evidence_urls: list[str] = Field(default_factory=list, max_length=10)


class ResolveDisputeRequest(BaseModel):
    resolution: DisputeResolution
    # Buyer refund in cents; required for partial_refund, defaults to the full
    # unrefunded amount for refund_buyer
    amount_cents: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=1000)


class DisputeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    opened_by_auth_id: str
    opened_by_role: str
    dispute_type: DisputeType
    description: str
    evidence_urls: list[str]
    status: DisputeStatus
    resolution: Optional[DisputeResolution] = None
    refund_amount_cents: Optional[int] = None
    payout_amount_cents: Optional[int] = None
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
