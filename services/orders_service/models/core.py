import random
import string
import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from services.orders_service.models.enums import (
    CancellationReason,
    OrderStatus,
    RefundStatus,
    enum_values,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Boolean, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Order(Base):
    """A paid book sale moving from seller commit through delivery."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    order_number: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )
    # One order per successful payment
    payment_reference: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )

    # Cross-service reference to books.id
    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), index=True, nullable=False
    )
    book_title: Mapped[str] = mapped_column(String(255), nullable=False)

    buyer_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    buyer_email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    seller_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    seller_email: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Amounts in ZAR cents, copied from the payment
    book_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_fee_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    platform_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    seller_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="ZAR", nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            name="order_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=OrderStatus.PAID,
        index=True,
        nullable=False,
    )

    shipping_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    pickup_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    delivery_provider: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    delivery_service: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    delivery_quote: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    paid_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    commit_deadline: Mapped[datetime] = mapped_column(
        UTCDateTime, index=True, nullable=False
    )
    committed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    commit_reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )
    declined_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    decline_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    cancellation_reason: Mapped[Optional[CancellationReason]] = mapped_column(
        SAEnum(
            CancellationReason,
            name="cancellation_reason_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    collected_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    refund_status: Mapped[RefundStatus] = mapped_column(
        SAEnum(
            RefundStatus,
            name="refund_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=RefundStatus.NONE,
        nullable=False,
    )
    refund_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    refund_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refunded_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # Set while a dispute is open; the seller payout waits for the resolution
    dispute_hold: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    @staticmethod
    def generate_order_number(now: Optional[datetime] = None) -> str:
        """RB-YYYYMMDD-XXXXX"""
        stamp = (now or utc_now()).strftime("%Y%m%d")
        suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
        return f"RB-{stamp}-{suffix}"

    def __repr__(self):
        return f"<Order {self.order_number} ({self.status.value})>"
