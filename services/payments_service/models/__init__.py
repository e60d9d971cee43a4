"""Payments Service models package."""

from services.payments_service.models.core import Payment, SellerPayout
from services.payments_service.models.enums import (
    PaymentStatus,
    PayoutMethod,
    PayoutStatus,
    SettlementMode,
)

__all__ = [
    "Payment",
    "PaymentStatus",
    "PayoutMethod",
    "PayoutStatus",
    "SellerPayout",
    "SettlementMode",
]
