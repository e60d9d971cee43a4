import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from services.payments_service.models.enums import (
    PaymentStatus,
    PayoutMethod,
    PayoutStatus,
    SettlementMode,
    enum_values,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Payment(Base):
    """One buyer checkout for one book."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    reference: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )

    buyer_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    buyer_email: Mapped[str] = mapped_column(String, nullable=False)
    seller_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    # Cross-service reference to books.id
    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), index=True, nullable=False
    )
    book_title: Mapped[str] = mapped_column(String(255), nullable=False)

    # Amounts in ZAR cents
    book_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_fee_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    platform_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    seller_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="ZAR", nullable=False)

    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            name="payment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PaymentStatus.PENDING,
        index=True,
        nullable=False,
    )
    settlement_mode: Mapped[SettlementMode] = mapped_column(
        SAEnum(
            SettlementMode,
            name="settlement_mode_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=SettlementMode.SPLIT,
        nullable=False,
    )
    subaccount_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    provider: Mapped[str] = mapped_column(String(32), default="paystack")
    access_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    authorization_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    shipping_address: Mapped[dict] = mapped_column(JSONType, nullable=False)
    delivery_quote: Mapped[dict] = mapped_column(JSONType, nullable=False)

    # Cross-service reference to orders.id, set once the order exists
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )
    fulfillment_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    refunded_amount_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    refund_reference: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    refunded_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # "metadata" is reserved by SQLAlchemy's Declarative API
    payment_metadata: Mapped[Optional[dict]] = mapped_column(
        "metadata", JSONType, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    @staticmethod
    def generate_reference() -> str:
        return f"RB-{uuid.uuid4().hex[:16].upper()}"

    def __repr__(self):
        return f"<Payment {self.reference} ({self.status.value})>"


class SellerPayout(Base):
    """The seller's share of one order, released once the book is collected."""

    __tablename__ = "seller_payouts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Cross-service reference to orders.id
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), unique=True, index=True, nullable=False
    )
    payment_reference: Mapped[str] = mapped_column(String, index=True, nullable=False)
    seller_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="ZAR", nullable=False)

    method: Mapped[PayoutMethod] = mapped_column(
        SAEnum(
            PayoutMethod,
            name="payout_method_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    status: Mapped[PayoutStatus] = mapped_column(
        SAEnum(
            PayoutStatus,
            name="payout_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PayoutStatus.PENDING,
        index=True,
        nullable=False,
    )

    recipient_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    transfer_reference: Mapped[Optional[str]] = mapped_column(
        String(64), unique=True, index=True, nullable=True
    )
    transfer_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<SellerPayout {self.order_id} ({self.status.value})>"
