"""Enum definitions for payments service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"


class SettlementMode(str, enum.Enum):
    # Paystack splits at charge time into the seller's subaccount
    SPLIT = "split"
    # Platform collects everything and transfers the seller share later
    TRANSFER = "transfer"


class PayoutStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


class PayoutMethod(str, enum.Enum):
    SUBACCOUNT_SPLIT = "subaccount_split"
    PAYSTACK_TRANSFER = "paystack_transfer"
