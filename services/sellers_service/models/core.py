import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class SellerProfile(Base):
    """Seller onboarding state: banking, Paystack settlement and pickup."""

    __tablename__ = "seller_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    auth_id: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Banking
    business_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    bank_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    bank_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    account_holder: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Paystack settlement
    subaccount_code: Mapped[Optional[str]] = mapped_column(
        String(50), unique=True, index=True, nullable=True
    )
    subaccount_active: Mapped[bool] = mapped_column(Boolean, default=False)
    subaccount_data: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    recipient_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    banking_verified_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )

    # {"street", "suburb", "city", "province", "postal_code", "country"}
    pickup_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    @property
    def masked_account_number(self) -> Optional[str]:
        if not self.account_number:
            return None
        return "*" * (len(self.account_number) - 4) + self.account_number[-4:]

    def __repr__(self):
        return f"<SellerProfile {self.auth_id}>"
