"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class CouponKind(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PaymentMethod(str, enum.Enum):
    COD = "cod"
    BKASH = "bkash"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class AuditEntityType(str, enum.Enum):
    ORDER = "order"
