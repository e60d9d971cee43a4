"""Enum definitions for orders service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PAID = "paid"
    COMMITTED = "committed"
    COLLECTED = "collected"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class CancellationReason(str, enum.Enum):
    SELLER_DECLINED = "seller_declined"
    COMMIT_EXPIRED = "commit_expired"
    BUYER_CANCELLED = "buyer_cancelled"
    ADMIN_REFUND = "admin_refund"
    DISPUTE_REFUND = "dispute_refund"


class RefundStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class DisputeType(str, enum.Enum):
    ITEM_NOT_RECEIVED = "item_not_received"
    ITEM_DAMAGED = "item_damaged"
    ITEM_NOT_AS_DESCRIBED = "item_not_as_described"
    UNAUTHORIZED_CHARGE = "unauthorized_charge"
    REFUND_NOT_PROCESSED = "refund_not_processed"
    OTHER = "other"


class DisputeStatus(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class DisputeResolution(str, enum.Enum):
    REFUND_BUYER = "refund_buyer"
    PAY_SELLER = "pay_seller"
    PARTIAL_REFUND = "partial_refund"
    NO_ACTION = "no_action"
