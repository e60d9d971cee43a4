"""Enum definitions for communications service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class NotificationType(str, enum.Enum):
    ORDER_PAID = "order_paid"
    COMMIT_REQUIRED = "commit_required"
    COMMIT_REMINDER = "commit_reminder"
    ORDER_COMMITTED = "order_committed"
    ORDER_DECLINED = "order_declined"
    ORDER_EXPIRED = "order_expired"
    ORDER_CANCELLED = "order_cancelled"
    REFUND_PROCESSED = "refund_processed"
    REFUND_FAILED = "refund_failed"
    ORDER_COLLECTED = "order_collected"
    ORDER_DELIVERED = "order_delivered"
    PAYOUT_SENT = "payout_sent"
    BANKING_UPDATED = "banking_updated"
    DISPUTE_OPENED = "dispute_opened"
    DISPUTE_RESOLVED = "dispute_resolved"
