"""Seller onboarding endpoints."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.delivery_service.schemas import Address
from services.payments_service.paystack_client import (
    PaystackClient,
    get_paystack_client,
)
from services.sellers_service.banks import list_banks
from services.sellers_service.models import SellerProfile
from services.sellers_service.schemas import (
    BankingDetailsRequest,
    BankingDetailsResponse,
    BankResponse,
    SellerProfileResponse,
    SellerReadiness,
)
from services.sellers_service.services import seller_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/sellers", tags=["sellers"])


def _profile_response(profile: SellerProfile) -> SellerProfileResponse:
    return SellerProfileResponse(
        id=profile.id,
        auth_id=profile.auth_id,
        email=profile.email,
        full_name=profile.full_name,
        pickup_address=profile.pickup_address,
        banking=BankingDetailsResponse.model_validate(profile),
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


@router.get("/banks", response_model=list[BankResponse])
async def get_supported_banks():
    return list_banks()


@router.get("/me", response_model=SellerProfileResponse)
async def get_my_seller_profile(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    profile = await seller_ops.get_or_create_profile(db, current_user)
    return _profile_response(profile)


@router.put("/me/banking", response_model=BankingDetailsResponse)
async def update_my_banking_details(
    payload: BankingDetailsRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
):
    """
    Save banking details and register (or update) the Paystack subaccount
    that receives the seller's share of every sale.
    """
    profile = await seller_ops.upsert_banking_details(
        db, current_user, payload, paystack
    )
    return BankingDetailsResponse.model_validate(profile)


@router.put("/me/pickup-address", response_model=SellerProfileResponse)
async def update_my_pickup_address(
    address: Address,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    profile = await seller_ops.set_pickup_address(db, current_user, address)
    return _profile_response(profile)


@router.get("/me/readiness", response_model=SellerReadiness)
async def get_my_readiness(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    profile = await seller_ops.get_profile(db, current_user.user_id)
    return seller_ops.get_readiness(profile)
