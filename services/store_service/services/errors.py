"""Reason-coded store errors.

Every error carries a machine-readable ``code`` and a human readable message
the storefront can show as-is. ``retryable`` marks the concurrency losers
(stock / coupon races at commit time): nothing was written, so re-running
assembly against fresh state is safe.
"""

import enum
import uuid
from typing import Any, Optional


class StoreError(Exception):
    code = "STORE_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        payload = {"detail": self.message, "code": self.code}
        payload.update(
            {k: (str(v) if isinstance(v, uuid.UUID) else v) for k, v in self.extra.items()}
        )
        return payload


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class InvalidQuantity(StoreError, ValueError):
    code = "INVALID_QUANTITY"
    status_code = 422

    def __init__(self, quantity: int):
        super().__init__(
            "Quantity must be at least 1. Remove the item instead.",
            quantity=quantity,
        )


class InvalidOrderInput(StoreError):
    code = "INVALID_INPUT"
    status_code = 422

    def __init__(self, errors: dict[str, str]):
        super().__init__("Please fix the highlighted fields.", errors=errors)
        self.errors = errors


# ---------------------------------------------------------------------------
# State errors
# ---------------------------------------------------------------------------


class ProductUnavailable(StoreError):
    code = "PRODUCT_UNAVAILABLE"
    status_code = 409

    def __init__(
        self,
        product_id: uuid.UUID,
        variant_id: Optional[uuid.UUID] = None,
        name: Optional[str] = None,
    ):
        label = name or "An item in your cart"
        super().__init__(
            f"{label} is no longer available.",
            product_id=product_id,
            variant_id=variant_id,
        )
        self.product_id = product_id
        self.variant_id = variant_id


class InsufficientStock(StoreError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409
    retryable = True

    def __init__(
        self,
        product_id: uuid.UUID,
        variant_id: Optional[uuid.UUID],
        requested: int,
        available: int,
        name: Optional[str] = None,
    ):
        label = name or "This item"
        if available > 0:
            message = f"Only {available} left of {label}. Reduce the quantity to {available}."
        else:
            message = f"{label} is out of stock."
        super().__init__(
            message,
            product_id=product_id,
            variant_id=variant_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.variant_id = variant_id
        self.requested = requested
        self.available = available


class CouponRejection(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    NOT_YET_VALID = "NOT_YET_VALID"
    EXPIRED = "EXPIRED"
    USAGE_EXCEEDED = "USAGE_EXCEEDED"
    BELOW_MIN_PURCHASE = "BELOW_MIN_PURCHASE"


COUPON_MESSAGES = {
    CouponRejection.NOT_FOUND: "Invalid coupon code.",
    CouponRejection.INACTIVE: "This coupon is no longer active.",
    CouponRejection.NOT_YET_VALID: "This coupon is not yet valid.",
    CouponRejection.EXPIRED: "This coupon has expired.",
    CouponRejection.USAGE_EXCEEDED: "This coupon has reached its usage limit.",
    CouponRejection.BELOW_MIN_PURCHASE: "Minimum purchase not met for this coupon.",
}


class CouponError(StoreError):
    """Raised by the evaluator; ``code`` is the specific rejection reason."""

    def __init__(self, reason: CouponRejection, message: Optional[str] = None, **extra):
        super().__init__(message or COUPON_MESSAGES[reason], **extra)
        self.reason = reason
        self.code = reason.value
        self.status_code = 404 if reason == CouponRejection.NOT_FOUND else 400


class CouponInvalid(StoreError):
    """A coupon submitted with an order failed re-evaluation."""

    code = "COUPON_INVALID"
    status_code = 400

    def __init__(self, error: CouponError):
        super().__init__(error.message, reason=error.reason.value, **error.extra)
        self.reason = error.reason


class CouponExhausted(StoreError):
    code = "COUPON_EXHAUSTED"
    status_code = 409
    retryable = True

    def __init__(self, code: str):
        super().__init__(
            "This coupon just reached its usage limit. Remove it or try another coupon.",
            coupon_code=code,
        )
        self.coupon_code = code


class OrderNotFound(StoreError):
    code = "ORDER_NOT_FOUND"
    status_code = 404

    def __init__(self, reference: str):
        super().__init__("Order not found.", reference=reference)


class InvalidStatusTransition(StoreError):
    code = "INVALID_STATUS_TRANSITION"
    status_code = 409

    def __init__(self, field: str, current: str, requested: str):
        super().__init__(
            f"Cannot move {field} from {current} to {requested}.",
            field=field,
            current=current,
            requested=requested,
        )


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------


class CommitFailed(StoreError):
    code = "ORDER_NOT_PLACED"
    status_code = 503

    def __init__(self, message: str = "We could not place your order. Please try again."):
        super().__init__(message)
