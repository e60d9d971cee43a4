"""Enum definitions for books service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class BookStatus(str, enum.Enum):
    AVAILABLE = "available"
    PENDING_COMMIT = "pending_commit"
    SOLD = "sold"
    WITHDRAWN = "withdrawn"


class BookCondition(str, enum.Enum):
    NEW = "new"
    GOOD = "good"
    BETTER = "better"
    AVERAGE = "average"
    RESELLING = "reselling"
