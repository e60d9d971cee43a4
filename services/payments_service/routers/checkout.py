"""Buyer checkout: initialize a split payment, verify it, list my payments."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import checkout_limit
from libs.db.session import get_async_db
from services.payments_service.models import Payment
from services.payments_service.paystack_client import (
    PaystackClient,
    PaystackError,
    get_paystack_client,
)
from services.payments_service.schemas import (
    CheckoutInitializeRequest,
    CheckoutInitializeResponse,
    PaymentResponse,
)
from services.payments_service.services import payment_ops
from services.payments_service.services.checkout_ops import initialize_checkout
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])
logger = get_logger(__name__)


@router.post("/checkout/initialize", response_model=CheckoutInitializeResponse)
@checkout_limit
async def initialize_book_checkout(
    request: Request,
    payload: CheckoutInitializeRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
):
    """
    Start a Paystack checkout for one book.

    The platform fee stays on the main account; the seller's share settles
    into their subaccount.
    """
    return await initialize_checkout(db, current_user, payload, paystack)


@router.get("/verify/{reference}", response_model=PaymentResponse)
async def verify_payment(
    reference: str,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
):
    """Called from the checkout success page; creates the order if the webhook has not."""
    payment = await payment_ops.get_payment_by_reference(db, reference)
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found"
        )
    if payment.buyer_auth_id != current_user.user_id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not your payment"
        )

    try:
        payment = await payment_ops.sync_with_provider(
            db, payment, paystack, source="buyer_verify"
        )
    except PaystackError as e:
        logger.warning(f"Verify failed for {reference}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not verify payment with Paystack: {e.message}",
        )
    return payment


@router.get("/me", response_model=list[PaymentResponse])
async def list_my_payments(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Payments where I am the buyer or the seller, newest first."""
    result = await db.execute(
        select(Payment)
        .where(
            or_(
                Payment.buyer_auth_id == current_user.user_id,
                Payment.seller_auth_id == current_user.user_id,
            )
        )
        .order_by(Payment.created_at.desc())
    )
    return result.scalars().all()
