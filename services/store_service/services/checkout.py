"""Checkout: assemble a draft against live state, commit it, retry a lost race once."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.store_service.models import Order
from services.store_service.services.cart import LineRequest
from services.store_service.services.errors import StoreError
from services.store_service.services.order_assembler import (
    CustomerInfo,
    assemble_order,
)
from services.store_service.services.order_commit import (
    commit_order,
    find_order_by_idempotency_key,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutRequest:
    lines: tuple[LineRequest, ...]
    customer: CustomerInfo
    coupon_code: Optional[str] = None
    idempotency_key: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    replayed: bool = False


async def place_order(
    db: AsyncSession,
    request: CheckoutRequest,
    now: Optional[datetime] = None,
) -> CheckoutResult:
    """Place an order.

    Stock and coupon races lost at commit time are retryable: nothing was
    written, so the submission is re-assembled against fresh state and
    committed again (``CHECKOUT_RETRY_ATTEMPTS`` times). If the fresh state
    genuinely cannot satisfy the cart, assembly raises the precise error.
    """
    if request.idempotency_key:
        existing = await find_order_by_idempotency_key(db, request.idempotency_key)
        if existing is not None:
            logger.info(
                "Checkout replay for key=%s -> order %s",
                request.idempotency_key,
                existing.order_number,
            )
            return CheckoutResult(order=existing, replayed=True)

    retries = max(0, get_settings().CHECKOUT_RETRY_ATTEMPTS)
    attempt = 0
    while True:
        try:
            draft = await assemble_order(
                db,
                request.lines,
                request.customer,
                request.coupon_code,
                user_id=request.user_id,
                idempotency_key=request.idempotency_key,
                now=now,
            )
        except StoreError as e:
            # Release the read transaction opened by the catalog lookups
            await db.rollback()
            logger.warning("Checkout rejected at assembly: %s", e.code)
            raise

        try:
            committed = await commit_order(db, draft)
        except StoreError as e:
            if e.retryable and attempt < retries:
                attempt += 1
                logger.info(
                    "Checkout lost a race on %s, re-assembling (retry %d/%d)",
                    e.code,
                    attempt,
                    retries,
                )
                continue
            logger.warning("Checkout rejected at commit: %s", e.code)
            raise

        return CheckoutResult(order=committed.order, replayed=committed.replayed)
