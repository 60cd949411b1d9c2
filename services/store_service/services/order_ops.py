"""Order lookups and staff status changes.

Status graph::

    pending -> confirmed -> processing -> shipped -> delivered
    pending | confirmed | processing | shipped -> cancelled

    payment: pending -> paid | failed

delivered, cancelled, paid and failed are terminal. Staff may force any
move; forced moves are audited as ``status_overridden``.
"""

import uuid
from typing import Optional

from libs.common.logging import get_logger
from services.store_service.models import (
    AuditEntityType,
    Order,
    OrderStatus,
    PaymentStatus,
)
from services.store_service.services.audit import log_audit
from services.store_service.services.errors import (
    InsufficientStock,
    InvalidOrderInput,
    InvalidStatusTransition,
    OrderNotFound,
    ProductUnavailable,
    StoreError,
)
from services.store_service.services.order_assembler import is_valid_phone
from services.store_service.services.stock import (
    decrement_stock,
    read_stock,
    restore_stock,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}


def can_transition(current, requested, graph) -> bool:
    return requested == current or requested in graph[current]


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_order_by_number(db: AsyncSession, order_number: str) -> Order:
    result = await db.execute(
        select(Order)
        .where(Order.order_number == order_number.strip())
        .options(selectinload(Order.items))
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(order_number)
    return order


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    result = await db.execute(
        select(Order).where(Order.id == order_id).options(selectinload(Order.items))
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(str(order_id))
    return order


async def list_orders_by_phone(db: AsyncSession, phone: str) -> list[Order]:
    """All orders placed with ``phone``, newest first. Guest tracking, no auth."""
    phone = (phone or "").strip()
    if not is_valid_phone(phone):
        raise InvalidOrderInput({"phone": "Enter a valid mobile number (01XXXXXXXXX)."})
    result = await db.execute(
        select(Order)
        .where(Order.customer_phone == phone)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def list_orders_for_user(db: AsyncSession, user_id: str) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def list_orders(
    db: AsyncSession,
    order_status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    """Staff listing, newest first. Returns ``(orders, total)``."""
    query = select(Order)
    if order_status is not None:
        query = query.where(Order.order_status == order_status)
    if payment_status is not None:
        query = query.where(Order.payment_status == payment_status)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        query.options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


async def _return_items_to_stock(db: AsyncSession, order: Order) -> None:
    for item in order.items:
        if not await restore_stock(db, item.product_id, item.variant_id, item.quantity):
            logger.warning(
                "Order %s: %s no longer in catalog, stock not restored",
                order.order_number,
                item.product_name,
            )


async def _take_items_from_stock(db: AsyncSession, order: Order) -> None:
    for item in order.items:
        if await decrement_stock(db, item.product_id, item.variant_id, item.quantity):
            continue
        current = await read_stock(db, item.product_id, item.variant_id)
        if current is None or not current[1]:
            raise ProductUnavailable(item.product_id, item.variant_id, item.product_name)
        raise InsufficientStock(
            item.product_id,
            item.variant_id,
            requested=item.quantity,
            available=current[0],
            name=item.product_name,
        )


async def update_order_status(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    actor: str,
    order_status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    notes: Optional[str] = None,
    force: bool = False,
) -> Order:
    """Move an order along the status graph.

    Cancelling returns the order's quantities to stock; a forced move out of
    ``cancelled`` takes them again (and fails if they are no longer there).
    """
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .with_for_update()
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(str(order_id))

    old = {"order_status": order.order_status.value, "payment_status": order.payment_status.value}
    overridden = False

    if order_status is not None and not can_transition(
        order.order_status, order_status, ORDER_TRANSITIONS
    ):
        if not force:
            raise InvalidStatusTransition(
                "order_status", order.order_status.value, order_status.value
            )
        overridden = True

    if payment_status is not None and not can_transition(
        order.payment_status, payment_status, PAYMENT_TRANSITIONS
    ):
        if not force:
            raise InvalidStatusTransition(
                "payment_status", order.payment_status.value, payment_status.value
            )
        overridden = True

    new_order_status = order_status or order.order_status
    new_payment_status = payment_status or order.payment_status
    if new_order_status == order.order_status and new_payment_status == order.payment_status:
        return order

    try:
        if new_order_status != order.order_status:
            if new_order_status == OrderStatus.CANCELLED:
                await _return_items_to_stock(db, order)
            elif order.order_status == OrderStatus.CANCELLED:
                await _take_items_from_stock(db, order)

        order.order_status = new_order_status
        order.payment_status = new_payment_status

        await log_audit(
            db,
            AuditEntityType.ORDER,
            order.id,
            "status_overridden" if overridden else "status_changed",
            actor,
            old_value=old,
            new_value={
                "order_status": new_order_status.value,
                "payment_status": new_payment_status.value,
            },
            notes=notes,
        )
        await db.commit()
    except StoreError:
        await db.rollback()
        raise

    logger.info(
        "Order %s status %s/%s -> %s/%s by %s%s",
        order.order_number,
        old["order_status"],
        old["payment_status"],
        new_order_status.value,
        new_payment_status.value,
        actor,
        " (override)" if overridden else "",
    )
    return order
