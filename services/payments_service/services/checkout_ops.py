"""Checkout initialization: price the order server-side and open a Paystack split checkout."""

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import rand_to_cents
from libs.common.logging import get_logger
from services.books_service.models import BookStatus
from services.books_service.services.book_ops import get_book
from services.delivery_service.schemas import Address
from services.delivery_service.services.couriers import aggregate_quotes
from services.delivery_service.services.quotes import find_quote
from services.payments_service.models import Payment, PaymentStatus, SettlementMode
from services.payments_service.paystack_client import PaystackClient, PaystackError
from services.payments_service.schemas import (
    CheckoutInitializeRequest,
    CheckoutInitializeResponse,
)
from services.payments_service.splits import compute_split
from services.sellers_service.services.seller_ops import get_profile, get_readiness
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()


def _callback_url() -> str:
    if settings.PAYSTACK_CALLBACK_URL:
        return settings.PAYSTACK_CALLBACK_URL
    # Paystack appends `trxref` and `reference` query params itself
    return f"{settings.FRONTEND_URL.rstrip('/')}/checkout/success"


async def initialize_checkout(
    db: AsyncSession,
    buyer: AuthUser,
    request: CheckoutInitializeRequest,
    paystack: PaystackClient,
) -> CheckoutInitializeResponse:
    """
    Record a pending payment and initialize the Paystack transaction.

    The delivery fee is re-quoted here so the amount charged never depends on
    prices sent by the browser.
    """
    book = await get_book(db, request.book_id)
    if book.status != BookStatus.AVAILABLE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This book is no longer available",
        )
    if book.seller_auth_id == buyer.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot buy your own book",
        )

    seller = await get_profile(db, book.seller_auth_id)
    if not get_readiness(seller).can_sell:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This seller cannot accept payments yet",
        )

    email = request.email or buyer.email
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An email address is required for payment receipts",
        )

    quotes = await aggregate_quotes(
        Address(**seller.pickup_address),
        request.shipping_address,
        request.package_details,
    )
    quote = find_quote(quotes, request.delivery.provider, request.delivery.service_code)
    if not quote:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Selected delivery option is not available for this route",
        )

    split = compute_split(
        book.price_cents, rand_to_cents(quote.price), settings.PLATFORM_FEE_PERCENT
    )
    if split.total_cents < settings.MIN_CHARGE_CENTS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order total is below the minimum charge of R1.00",
        )

    mode = SettlementMode(settings.SELLER_SETTLEMENT_MODE)
    payment = Payment(
        reference=Payment.generate_reference(),
        buyer_auth_id=buyer.user_id,
        buyer_email=email,
        seller_auth_id=book.seller_auth_id,
        book_id=book.id,
        book_title=book.title,
        book_price_cents=split.book_price_cents,
        delivery_fee_cents=split.delivery_fee_cents,
        platform_fee_cents=split.platform_fee_cents,
        seller_amount_cents=split.seller_amount_cents,
        total_cents=split.total_cents,
        currency=settings.CURRENCY,
        status=PaymentStatus.PENDING,
        settlement_mode=mode,
        subaccount_code=seller.subaccount_code if mode == SettlementMode.SPLIT else None,
        shipping_address=request.shipping_address.model_dump(),
        delivery_quote=quote.model_dump(),
        payment_metadata={"pickup_address": seller.pickup_address},
    )
    db.add(payment)
    await db.commit()

    try:
        initialized = await paystack.initialize_transaction(
            email=email,
            amount_cents=split.total_cents,
            reference=payment.reference,
            currency=payment.currency,
            callback_url=_callback_url(),
            metadata={
                "payment_reference": payment.reference,
                "book_id": str(book.id),
                "buyer_auth_id": buyer.user_id,
                "seller_auth_id": book.seller_auth_id,
                "platform_fee_cents": split.platform_fee_cents,
                "seller_amount_cents": split.seller_amount_cents,
                "delivery_fee_cents": split.delivery_fee_cents,
            },
            subaccount=payment.subaccount_code,
            transaction_charge=(
                split.platform_charge_cents if payment.subaccount_code else None
            ),
            bearer=settings.PAYSTACK_SPLIT_BEARER if payment.subaccount_code else None,
        )
    except PaystackError as e:
        payment.status = PaymentStatus.FAILED
        payment.fulfillment_error = f"Paystack initialize failed: {e.message}"
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Paystack initialize failed: {e.message}",
        )

    payment.access_code = initialized.access_code
    payment.authorization_url = initialized.authorization_url
    await db.commit()

    logger.info(
        f"Checkout {payment.reference} initialized for book {book.id}",
        extra={
            "extra_fields": {
                "reference": payment.reference,
                "total_cents": split.total_cents,
                "settlement_mode": mode.value,
            }
        },
    )
    return CheckoutInitializeResponse(
        reference=payment.reference,
        authorization_url=initialized.authorization_url,
        access_code=initialized.access_code,
        breakdown=split.as_dict(),
        delivery_quote=quote,
    )
