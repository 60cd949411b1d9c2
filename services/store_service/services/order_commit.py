"""Atomic order commit: stock, coupon usage and the order rows, or nothing.

Steps, all inside one transaction:

1. Conditionally decrement stock for every line (zero rows -> abort)
2. Conditionally claim one coupon use (zero rows -> abort)
3. Insert the order and its items with frozen prices
4. Commit; any failure rolls back every statement above
"""

from dataclasses import dataclass
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.store_service.models import Coupon, Order, OrderItem
from services.store_service.services.errors import (
    CommitFailed,
    CouponExhausted,
    InsufficientStock,
    ProductUnavailable,
    StoreError,
)
from services.store_service.services.order_assembler import (
    DraftLine,
    OrderDraft,
    generate_order_number,
)
from services.store_service.services.stock import decrement_stock, read_stock
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommitResult:
    order: Order
    replayed: bool = False


async def find_order_by_idempotency_key(
    db: AsyncSession, idempotency_key: str
) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.idempotency_key == idempotency_key)
        .options(selectinload(Order.items))
    )
    return result.scalar_one_or_none()


async def _order_number_taken(db: AsyncSession, order_number: str) -> bool:
    result = await db.execute(
        select(Order.id).where(Order.order_number == order_number)
    )
    return result.first() is not None


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


async def take_stock(db: AsyncSession, line: DraftLine) -> None:
    """Decrement stock for one line or raise the precise reason it failed."""
    if await decrement_stock(db, line.product_id, line.variant_id, line.quantity):
        return

    current = await read_stock(db, line.product_id, line.variant_id)
    if current is None or not current[1]:
        raise ProductUnavailable(line.product_id, line.variant_id, line.product_name)
    raise InsufficientStock(
        line.product_id,
        line.variant_id,
        requested=line.quantity,
        available=current[0],
        name=line.product_name,
    )


async def claim_coupon_usage(db: AsyncSession, code: str) -> None:
    """Charge one use of ``code`` if a slot is left."""
    result = await db.execute(
        update(Coupon)
        .where(
            func.upper(Coupon.code) == code.upper(),
            Coupon.active.is_(True),
            or_(
                Coupon.usage_limit.is_(None),
                Coupon.usage_count < Coupon.usage_limit,
            ),
        )
        .values(usage_count=Coupon.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise CouponExhausted(code)


def build_order(draft: OrderDraft) -> Order:
    customer = draft.customer
    return Order(
        order_number=draft.order_number,
        user_id=draft.user_id,
        customer_name=customer.name,
        customer_phone=customer.phone,
        customer_address=customer.address,
        payment_method=customer.payment_method,
        bkash_number=customer.bkash_number,
        bkash_trx_id=customer.bkash_trx_id,
        subtotal=draft.subtotal,
        discount=draft.discount,
        total=draft.total,
        coupon_code=draft.coupon_code,
        idempotency_key=draft.idempotency_key,
        items=[
            OrderItem(
                position=position,
                product_id=line.product_id,
                variant_id=line.variant_id,
                product_name=line.product_name,
                variant_name=line.variant_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for position, line in enumerate(draft.lines)
        ],
    )


async def _write(db: AsyncSession, draft: OrderDraft) -> Order:
    # Fixed lock order across checkouts so two carts sharing rows cannot deadlock
    lines = sorted(
        draft.lines,
        key=lambda line: (line.variant_id is not None, str(line.variant_id or line.product_id)),
    )
    for line in lines:
        await take_stock(db, line)

    if draft.coupon_code:
        await claim_coupon_usage(db, draft.coupon_code)

    order = build_order(draft)
    db.add(order)
    await db.flush()
    return order


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------


async def commit_order(db: AsyncSession, draft: OrderDraft) -> CommitResult:
    """Persist ``draft`` atomically and return the committed order.

    A draft whose idempotency key already produced an order returns that
    order, flagged ``replayed``, instead of writing again. Order-number
    collisions regenerate the number and retry the whole transaction.
    """
    settings = get_settings()
    attempts = max(1, settings.ORDER_NUMBER_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        try:
            order = await _write(db, draft)
            await db.commit()
        except StoreError as e:
            await db.rollback()
            logger.warning(
                "Order %s rolled back: %s", draft.order_number, e.code
            )
            raise
        except IntegrityError as e:
            await db.rollback()
            if draft.idempotency_key:
                existing = await find_order_by_idempotency_key(
                    db, draft.idempotency_key
                )
                if existing is not None:
                    logger.info(
                        "Idempotent replay for key=%s -> order %s",
                        draft.idempotency_key,
                        existing.order_number,
                    )
                    return CommitResult(order=existing, replayed=True)
            if attempt < attempts and await _order_number_taken(
                db, draft.order_number
            ):
                logger.warning(
                    "Order number %s already taken, regenerating", draft.order_number
                )
                draft = draft.with_order_number(generate_order_number())
                continue
            logger.exception("Order %s violated a constraint", draft.order_number)
            raise CommitFailed() from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Order %s could not be committed", draft.order_number)
            raise CommitFailed() from e

        logger.info(
            "Committed order %s (%d items, total=%s, coupon=%s)",
            order.order_number,
            len(order.items),
            order.total,
            order.coupon_code,
        )
        return CommitResult(order=order)

    raise CommitFailed()
