import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from services.communications_service.models.enums import NotificationType, enum_values
from sqlalchemy import Boolean
from sqlalchemy import Enum as SAEnum
from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Notification(Base):
    """In-app notification shown in a user's activity feed."""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    # Cross-service reference to orders.id
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), index=True, nullable=True
    )

    type: Mapped[NotificationType] = mapped_column(
        SAEnum(
            NotificationType,
            name="notification_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    notification_metadata: Mapped[Optional[dict]] = mapped_column(
        "metadata", JSONType, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)

    def __repr__(self):
        return f"<Notification {self.type.value} -> {self.user_auth_id}>"
