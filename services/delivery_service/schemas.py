"""Pydantic schemas for the delivery service."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.delivery_service.models import ShipmentStatus

# ============================================================================
# ADDRESS / PACKAGE SCHEMAS
# ============================================================================


class Address(BaseModel):
    street: Optional[str] = Field(None, max_length=255)
    suburb: Optional[str] = Field(None, max_length=100)
    city: str = Field(..., max_length=100)
    province: str = Field(..., max_length=100)
    postal_code: Optional[str] = Field(None, max_length=10)
    country: str = "ZA"

    @field_validator("city", "province")
    @classmethod
    def _required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class PackageDetails(BaseModel):
    weight: float = Field(1.0, ge=0, description="Weight in kg")
    length: Optional[float] = Field(None, ge=0)
    width: Optional[float] = Field(None, ge=0)
    height: Optional[float] = Field(None, ge=0)
    value: Optional[float] = Field(None, ge=0, description="Declared value in rands")
    fragile: bool = False


# ============================================================================
# QUOTE SCHEMAS
# ============================================================================


class DeliveryQuote(BaseModel):
    provider: str
    service: str
    service_code: str
    price: float  # rands
    currency: str = "ZAR"
    estimated_days: str
    tracking_included: bool = True
    insurance_included: bool = False
    max_value: Optional[float] = None
    restrictions: list[str] = []
    live: bool = False


class QuoteRequest(BaseModel):
    pickup_address: Address
    delivery_address: Address
    package_details: Optional[PackageDetails] = None


class QuoteResponse(BaseModel):
    quotes: list[DeliveryQuote]
    cheapest: Optional[DeliveryQuote] = None
    fastest: Optional[DeliveryQuote] = None


class DeliveryChoice(BaseModel):
    """The courier option a buyer picked at checkout."""

    provider: str
    service_code: str


# ============================================================================
# SHIPMENT SCHEMAS
# ============================================================================


class TrackingEvent(BaseModel):
    status: ShipmentStatus
    description: Optional[str] = None
    location: Optional[str] = None
    occurred_at: Optional[datetime] = None


class ShipmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    provider: str
    service_code: str
    service_name: Optional[str] = None
    tracking_number: str
    status: ShipmentStatus
    events: list[dict] = []
    collected_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
