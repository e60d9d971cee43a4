import random
import string
import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from services.delivery_service.models.enums import ShipmentStatus, enum_values
from sqlalchemy import Boolean
from sqlalchemy import Enum as SAEnum
from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Shipment(Base):
    """Courier booking for a committed order."""

    __tablename__ = "shipments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Cross-service reference to orders.id
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), unique=True, index=True, nullable=False
    )

    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    service_code: Mapped[str] = mapped_column(String(50), nullable=False)
    service_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tracking_number: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    # True when the booking was accepted by the courier's API
    provider_booked: Mapped[bool] = mapped_column(Boolean, default=False)
    provider_shipment_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )

    status: Mapped[ShipmentStatus] = mapped_column(
        SAEnum(
            ShipmentStatus,
            name="shipment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ShipmentStatus.BOOKED,
        nullable=False,
    )

    collection_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    delivery_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    events: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    collected_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    @staticmethod
    def generate_tracking_number(provider: str) -> str:
        """Local tracking number like RB-CG-7K2Q9XW4."""
        prefix = "".join(part[0] for part in provider.split("-")).upper()
        suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=8))
        return f"RB-{prefix}-{suffix}"

    def __repr__(self):
        return f"<Shipment {self.tracking_number} ({self.status.value})>"
