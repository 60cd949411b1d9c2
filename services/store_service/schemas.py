"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, model_validator
from services.store_service.models import (
    CouponKind,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)

# Whole currency units; rendered as JSON numbers like the storefront expects
Money = Annotated[
    Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")
]


# ============================================================================
# ERROR SCHEMA
# ============================================================================


class ErrorResponse(BaseModel):
    """Shape of every reason-coded error."""

    detail: str
    code: str


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class OrderLineCreate(BaseModel):
    """One requested line. Any client-side price is ignored."""

    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    """Place an order (guest or authenticated)."""

    customer_name: str = Field("", max_length=255)
    customer_phone: str = Field("", max_length=20)
    customer_address: str = Field("", max_length=1000)
    payment_method: PaymentMethod = PaymentMethod.COD
    bkash_number: Optional[str] = Field(None, max_length=20)
    bkash_trx_id: Optional[str] = Field(None, max_length=64)
    items: list[OrderLineCreate] = []
    coupon_code: Optional[str] = Field(None, max_length=50)
    idempotency_key: Optional[str] = Field(None, max_length=100)


class OrderPlacedResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    subtotal: Money
    discount: Money
    total: Money
    coupon_code: Optional[str]
    order_status: OrderStatus
    payment_status: PaymentStatus


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID]
    product_name: str
    variant_name: Optional[str]
    quantity: int
    unit_price: Money
    line_total: Money


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    user_id: Optional[str]

    customer_name: str
    customer_phone: str
    customer_address: str

    payment_method: PaymentMethod
    bkash_number: Optional[str]
    bkash_trx_id: Optional[str]

    subtotal: Money
    discount: Money
    total: Money
    coupon_code: Optional[str]

    order_status: OrderStatus
    payment_status: PaymentStatus
    created_at: datetime
    updated_at: datetime

    items: list[OrderItemResponse] = []


class OrderSummary(BaseModel):
    """Order tracking row (by phone)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_name: str
    customer_phone: str
    customer_address: str
    total: Money
    order_status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    created_at: datetime


class OrderTrackingResponse(BaseModel):
    orders: list[OrderSummary]


class OrderListResponse(BaseModel):
    """Paginated order list."""

    items: list[OrderResponse]
    total: int
    page: int
    page_size: int


class OrderStatusUpdate(BaseModel):
    """Update order and/or payment status (staff)."""

    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = None
    force: bool = False  # manual override of the transition graph, audited

    @model_validator(mode="after")
    def require_a_change(self):
        if self.order_status is None and self.payment_status is None:
            raise ValueError("order_status or payment_status is required")
        return self


# ============================================================================
# COUPON SCHEMAS
# ============================================================================


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    subtotal: Decimal = Field(..., ge=0)


class CouponSummary(BaseModel):
    code: str
    description: Optional[str] = None
    kind: CouponKind
    value: Money
    max_discount: Optional[Money] = None
    min_purchase: Optional[Money] = None


class CouponValidateResponse(BaseModel):
    valid: bool = True
    code: str
    subtotal: Money
    discount: Money
    total: Money
    coupon: CouponSummary
