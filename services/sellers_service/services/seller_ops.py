"""Seller onboarding: banking, Paystack subaccounts and readiness checks."""

from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.delivery_service.schemas import Address
from services.payments_service.paystack_client import PaystackClient, PaystackError
from services.sellers_service.banks import bank_code_for
from services.sellers_service.models import SellerProfile
from services.sellers_service.schemas import BankingDetailsRequest, SellerReadiness
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


async def get_profile(db: AsyncSession, auth_id: str) -> Optional[SellerProfile]:
    result = await db.execute(
        select(SellerProfile).where(SellerProfile.auth_id == auth_id)
    )
    return result.scalar_one_or_none()


async def get_or_create_profile(db: AsyncSession, user: AuthUser) -> SellerProfile:
    profile = await get_profile(db, user.user_id)
    if profile:
        return profile

    profile = SellerProfile(
        auth_id=user.user_id,
        email=user.email,
        full_name=user.user_metadata.get("full_name"),
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------


def get_readiness(profile: Optional[SellerProfile]) -> SellerReadiness:
    """A seller can list and sell only with active settlement and a pickup address."""
    has_banking = bool(
        profile and profile.subaccount_code and profile.subaccount_active
    )
    if settings.SELLER_SETTLEMENT_MODE == "transfer":
        has_banking = bool(profile and profile.recipient_code)
    has_pickup = bool(profile and profile.pickup_address)

    missing = []
    if not has_banking:
        missing.append("banking_details")
    if not has_pickup:
        missing.append("pickup_address")
    return SellerReadiness(
        can_sell=not missing,
        has_banking=has_banking,
        has_pickup_address=has_pickup,
        missing=missing,
    )


async def require_ready_seller(db: AsyncSession, auth_id: str) -> SellerProfile:
    profile = await get_profile(db, auth_id)
    readiness = get_readiness(profile)
    if not readiness.can_sell:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Seller setup incomplete: missing {', '.join(readiness.missing)}",
        )
    return profile


# ---------------------------------------------------------------------------
# Banking
# ---------------------------------------------------------------------------


async def upsert_banking_details(
    db: AsyncSession,
    user: AuthUser,
    data: BankingDetailsRequest,
    paystack: PaystackClient,
) -> SellerProfile:
    """Create or update the seller's Paystack subaccount for these details.

    Nothing is saved when Paystack rejects the details.
    """
    bank_code = bank_code_for(data.bank_name)
    if not bank_code:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported bank: {data.bank_name}",
        )

    profile = await get_or_create_profile(db, user)
    contact_email = data.email or user.email or profile.email

    try:
        if profile.subaccount_code:
            subaccount = await paystack.update_subaccount(
                profile.subaccount_code,
                business_name=data.business_name,
                settlement_bank=bank_code,
                account_number=data.account_number,
                primary_contact_email=contact_email,
                primary_contact_name=data.account_holder,
            )
        else:
            subaccount = await paystack.create_subaccount(
                business_name=data.business_name,
                settlement_bank=bank_code,
                account_number=data.account_number,
                percentage_charge=settings.PLATFORM_FEE_PERCENT,
                primary_contact_email=contact_email,
                primary_contact_name=data.account_holder,
                metadata={"seller_auth_id": user.user_id},
            )

        recipient_code = profile.recipient_code
        bank_changed = (
            profile.account_number != data.account_number
            or profile.bank_code != bank_code
        )
        if settings.SELLER_SETTLEMENT_MODE == "transfer" and (
            bank_changed or not recipient_code
        ):
            recipient = await paystack.create_transfer_recipient(
                account_number=data.account_number,
                bank_code=bank_code,
                name=data.account_holder,
                currency=settings.CURRENCY,
            )
            recipient_code = recipient.recipient_code
    except PaystackError as e:
        logger.warning(
            f"Paystack rejected banking details for {user.user_id}: {e.message}",
            extra={"extra_fields": {"status_code": e.status_code}},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Paystack could not register these banking details: {e.message}",
        )

    profile.business_name = data.business_name
    profile.bank_name = data.bank_name
    profile.bank_code = bank_code
    profile.account_number = data.account_number
    profile.account_holder = data.account_holder
    if data.phone:
        profile.phone = data.phone
    if contact_email and not profile.email:
        profile.email = contact_email
    profile.subaccount_code = subaccount.subaccount_code or profile.subaccount_code
    profile.subaccount_active = subaccount.active
    profile.subaccount_data = subaccount.raw
    profile.recipient_code = recipient_code
    profile.banking_verified_at = utc_now()

    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    logger.info(
        f"Banking details saved for seller {user.user_id} "
        f"(subaccount={profile.subaccount_code})"
    )
    return profile


async def set_pickup_address(
    db: AsyncSession, user: AuthUser, address: Address
) -> SellerProfile:
    profile = await get_or_create_profile(db, user)
    profile.pickup_address = address.model_dump()
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


async def apply_subaccount_update(db: AsyncSession, data: dict) -> Optional[SellerProfile]:
    """Sync a ``subaccount.updated`` webhook payload onto the seller profile."""
    code = data.get("subaccount_code")
    if not code:
        return None

    result = await db.execute(
        select(SellerProfile).where(SellerProfile.subaccount_code == code)
    )
    profile = result.scalar_one_or_none()
    if not profile:
        logger.warning(f"subaccount.updated for unknown subaccount {code}")
        return None

    profile.subaccount_active = bool(data.get("active", profile.subaccount_active))
    profile.subaccount_data = {**(profile.subaccount_data or {}), **data}
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile
