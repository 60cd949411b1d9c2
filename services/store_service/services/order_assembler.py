"""Turn a cart submission into a priced, validated order draft.

Nothing here writes. Prices come from the catalog rows, never from the
client; stock is checked here for a fast, precise error and checked again
inside the commit transaction where it actually counts.
"""

import re
import secrets
import string
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.config import get_settings
from libs.common.currency import ZERO
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.models import PaymentMethod, Product, ProductVariant
from services.store_service.services.cart import LineRequest
from services.store_service.services.coupon_evaluator import (
    evaluate_coupon,
    normalize_code,
)
from services.store_service.services.errors import (
    CouponError,
    CouponInvalid,
    InsufficientStock,
    InvalidOrderInput,
    ProductUnavailable,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Bangladeshi mobile numbers: 01 + operator digit 3-9 + 8 digits
PHONE_PATTERN = re.compile(r"^01[3-9]\d{8}$")
ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    phone: str
    address: str
    payment_method: PaymentMethod = PaymentMethod.COD
    bkash_number: Optional[str] = None
    bkash_trx_id: Optional[str] = None


@dataclass(frozen=True)
class DraftLine:
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID]
    product_name: str
    variant_name: Optional[str]
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderDraft:
    order_number: str
    customer: CustomerInfo
    lines: tuple[DraftLine, ...]
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    coupon_code: Optional[str] = None
    user_id: Optional[str] = None
    idempotency_key: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def with_order_number(self, order_number: str) -> "OrderDraft":
        return replace(self, order_number=order_number)


def generate_order_number(now: Optional[datetime] = None) -> str:
    """Order number like ORD-20261019-7KQ2ZP.

    Collisions are possible in principle; the unique constraint on
    store_orders.order_number is what guarantees uniqueness.
    """
    settings = get_settings()
    date_part = (now or utc_now()).strftime("%Y%m%d")
    random_part = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(6))
    return f"{settings.ORDER_NUMBER_PREFIX}-{date_part}-{random_part}"


def is_valid_phone(phone: Optional[str]) -> bool:
    return bool(phone) and bool(PHONE_PATTERN.match(phone))


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def validate_customer(customer: CustomerInfo) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not customer.name or not customer.name.strip():
        errors["customer_name"] = "Name is required."
    if not customer.phone or not customer.phone.strip():
        errors["customer_phone"] = "Phone number is required."
    elif not is_valid_phone(customer.phone.strip()):
        errors["customer_phone"] = "Enter a valid mobile number (01XXXXXXXXX)."
    if not customer.address or not customer.address.strip():
        errors["customer_address"] = "Delivery address is required."

    if customer.payment_method == PaymentMethod.BKASH:
        if not customer.bkash_number or not customer.bkash_number.strip():
            errors["bkash_number"] = "bKash number is required."
        elif not is_valid_phone(customer.bkash_number.strip()):
            errors["bkash_number"] = "Enter a valid bKash number (01XXXXXXXXX)."
        if not customer.bkash_trx_id or not customer.bkash_trx_id.strip():
            errors["bkash_trx_id"] = "bKash transaction ID is required."
    return errors


def merge_line_requests(
    lines: Iterable[LineRequest],
) -> tuple[list[LineRequest], dict[str, str]]:
    """Collapse repeated (product_id, variant_id) requests, keeping first-seen order."""
    errors: dict[str, str] = {}
    merged: dict[tuple, LineRequest] = {}
    for i, line in enumerate(lines):
        quantity = line.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            errors[f"items.{i}.quantity"] = "Quantity must be at least 1."
            continue
        key = (line.product_id, line.variant_id)
        if key in merged:
            merged[key] = replace(merged[key], quantity=merged[key].quantity + quantity)
        else:
            merged[key] = line
    if not merged and not errors:
        errors["items"] = "Your cart is empty."
    return list(merged.values()), errors


# ---------------------------------------------------------------------------
# Catalog reads
# ---------------------------------------------------------------------------


async def _load_catalog(
    db: AsyncSession, lines: list[LineRequest]
) -> tuple[dict[uuid.UUID, Product], dict[uuid.UUID, ProductVariant]]:
    product_ids = {line.product_id for line in lines}
    variant_ids = {line.variant_id for line in lines if line.variant_id is not None}

    result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
    products = {p.id: p for p in result.scalars().all()}

    variants: dict[uuid.UUID, ProductVariant] = {}
    if variant_ids:
        result = await db.execute(
            select(ProductVariant).where(ProductVariant.id.in_(variant_ids))
        )
        variants = {v.id: v for v in result.scalars().all()}
    return products, variants


def price_line(
    line: LineRequest,
    products: dict[uuid.UUID, Product],
    variants: dict[uuid.UUID, ProductVariant],
) -> DraftLine:
    """Re-price one request from the catalog and check it against stock."""
    product = products.get(line.product_id)
    if product is None or not product.is_active:
        raise ProductUnavailable(
            line.product_id, line.variant_id, product.name if product else None
        )

    if line.variant_id is None:
        unit_price = product.price
        available = product.stock
        variant_name = None
    else:
        variant = variants.get(line.variant_id)
        if (
            variant is None
            or not variant.is_active
            or variant.product_id != product.id
        ):
            raise ProductUnavailable(line.product_id, line.variant_id, product.name)
        unit_price = variant.price if variant.price is not None else product.price
        available = variant.stock
        variant_name = variant.name

    if line.quantity > available:
        raise InsufficientStock(
            line.product_id,
            line.variant_id,
            requested=line.quantity,
            available=available,
            name=product.name if variant_name is None else f"{product.name} ({variant_name})",
        )

    return DraftLine(
        product_id=product.id,
        variant_id=line.variant_id,
        product_name=product.name,
        variant_name=variant_name,
        quantity=line.quantity,
        unit_price=Decimal(unit_price),
    )


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


async def assemble_order(
    db: AsyncSession,
    lines: Iterable[LineRequest],
    customer: CustomerInfo,
    coupon_code: Optional[str] = None,
    *,
    user_id: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OrderDraft:
    """Validate a checkout submission against live catalog and coupon state.

    Raises InvalidOrderInput before touching the database, then
    ProductUnavailable, InsufficientStock or CouponInvalid for state problems.
    """
    requests, errors = merge_line_requests(lines)
    errors.update(validate_customer(customer))
    if errors:
        raise InvalidOrderInput(errors)

    products, variants = await _load_catalog(db, requests)
    draft_lines = tuple(price_line(line, products, variants) for line in requests)
    subtotal = sum((line.line_total for line in draft_lines), ZERO)

    discount = ZERO
    applied_code: Optional[str] = None
    if coupon_code and coupon_code.strip():
        try:
            evaluation = await evaluate_coupon(db, coupon_code, subtotal, now=now)
        except CouponError as e:
            raise CouponInvalid(e) from e
        discount = evaluation.discount
        applied_code = evaluation.code

    total = subtotal - discount

    draft = OrderDraft(
        order_number=generate_order_number(now),
        customer=replace(
            customer,
            name=customer.name.strip(),
            phone=customer.phone.strip(),
            address=customer.address.strip(),
        ),
        lines=draft_lines,
        subtotal=subtotal,
        discount=discount,
        total=total,
        coupon_code=normalize_code(applied_code) if applied_code else None,
        user_id=user_id,
        idempotency_key=idempotency_key,
    )
    logger.debug(
        "Assembled draft %s: %d lines subtotal=%s discount=%s",
        draft.order_number,
        len(draft.lines),
        subtotal,
        discount,
    )
    return draft
