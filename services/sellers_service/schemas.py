import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.delivery_service.schemas import Address

# ============================================================================
# BANKING SCHEMAS
# ============================================================================


class BankResponse(BaseModel):
    name: str
    code: str


class BankingDetailsRequest(BaseModel):
    business_name: str = Field(..., min_length=2, max_length=200)
    bank_name: str = Field(..., min_length=2, max_length=100)
    account_number: str = Field(..., pattern=r"^[0-9]{8,11}$")
    account_holder: str = Field(..., min_length=2, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)


class BankingDetailsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    business_name: Optional[str] = None
    bank_name: Optional[str] = None
    bank_code: Optional[str] = None
    account_number: Optional[str] = Field(
        None, validation_alias="masked_account_number"
    )
    account_holder: Optional[str] = None
    subaccount_code: Optional[str] = None
    subaccount_active: bool = False
    banking_verified_at: Optional[datetime] = None


# ============================================================================
# PROFILE SCHEMAS
# ============================================================================


class SellerProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    auth_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    pickup_address: Optional[Address] = None
    banking: BankingDetailsResponse
    created_at: datetime
    updated_at: datetime


class SellerReadiness(BaseModel):
    can_sell: bool
    has_banking: bool
    has_pickup_address: bool
    missing: list[str] = []
