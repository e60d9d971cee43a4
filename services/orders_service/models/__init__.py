"""Orders Service models package."""

from services.orders_service.models.core import Order
from services.orders_service.models.dispute import Dispute
from services.orders_service.models.enums import (
    CancellationReason,
    DisputeResolution,
    DisputeStatus,
    DisputeType,
    OrderStatus,
    RefundStatus,
)

__all__ = [
    "CancellationReason",
    "Dispute",
    "DisputeResolution",
    "DisputeStatus",
    "DisputeType",
    "Order",
    "OrderStatus",
    "RefundStatus",
]
