import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from services.orders_service.models.enums import (
    DisputeResolution,
    DisputeStatus,
    DisputeType,
    enum_values,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Dispute(Base):
    """A buyer or seller complaint about an order, settled by an admin."""

    __tablename__ = "order_disputes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    opened_by_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    opened_by_role: Mapped[str] = mapped_column(String(16), nullable=False)

    dispute_type: Mapped[DisputeType] = mapped_column(
        SAEnum(
            DisputeType,
            name="dispute_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_urls: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    status: Mapped[DisputeStatus] = mapped_column(
        SAEnum(
            DisputeStatus,
            name="dispute_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=DisputeStatus.OPEN,
        index=True,
        nullable=False,
    )
    resolution: Mapped[Optional[DisputeResolution]] = mapped_column(
        SAEnum(
            DisputeResolution,
            name="dispute_resolution_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    # Buyer refund in ZAR cents for refund_buyer / partial_refund
    refund_amount_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payout_amount_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_by_auth_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Dispute {self.id} ({self.status.value})>"
