"""Store Service models package."""

from services.store_service.models.catalog import Product, ProductVariant
from services.store_service.models.commerce import Order, OrderItem, StoreAuditLog
from services.store_service.models.coupons import Coupon
from services.store_service.models.enums import (
    AuditEntityType,
    CouponKind,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)

__all__ = [
    "AuditEntityType",
    "Coupon",
    "CouponKind",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "ProductVariant",
    "StoreAuditLog",
]
