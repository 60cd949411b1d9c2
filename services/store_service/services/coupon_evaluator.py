"""Coupon evaluation: does a code apply to a subtotal, and for how much.

Evaluation is read-only. Usage is charged exactly once, inside the order
commit transaction (see ``order_commit.claim_coupon_usage``), so a coupon may
be evaluated any number of times (cart preview, checkout re-validation)
without side effects.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from libs.common.config import get_settings
from libs.common.currency import ZERO, format_money, round_down
from libs.common.datetime_utils import as_utc, utc_now
from libs.common.logging import get_logger
from services.store_service.models import Coupon, CouponKind
from services.store_service.services.errors import CouponError, CouponRejection
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Rule shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PercentageDiscount:
    percent: Decimal
    max_discount: Optional[Decimal] = None

    def amount_for(self, subtotal: Decimal) -> Decimal:
        amount = subtotal * self.percent / 100
        if self.max_discount is not None:
            amount = min(amount, self.max_discount)
        return amount


@dataclass(frozen=True)
class FixedDiscount:
    amount: Decimal

    def amount_for(self, subtotal: Decimal) -> Decimal:
        # A fixed discount never exceeds what it applies to
        return min(self.amount, subtotal)


Discount = Union[PercentageDiscount, FixedDiscount]


@dataclass(frozen=True)
class CouponRule:
    """Eligibility window and limits plus the discount shape of one coupon."""

    code: str
    discount: Discount
    active: bool
    valid_from: datetime
    valid_to: datetime
    min_purchase: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    description: Optional[str] = None

    @classmethod
    def from_model(cls, coupon: Coupon) -> "CouponRule":
        discount: Discount
        if coupon.kind == CouponKind.PERCENTAGE:
            discount = PercentageDiscount(
                percent=Decimal(coupon.value), max_discount=coupon.max_discount
            )
        else:
            discount = FixedDiscount(amount=Decimal(coupon.value))
        return cls(
            code=coupon.code,
            discount=discount,
            active=coupon.active,
            valid_from=as_utc(coupon.valid_from),
            valid_to=as_utc(coupon.valid_to),
            min_purchase=coupon.min_purchase,
            usage_limit=coupon.usage_limit,
            usage_count=coupon.usage_count,
            description=coupon.description,
        )

    @property
    def kind(self) -> CouponKind:
        if isinstance(self.discount, PercentageDiscount):
            return CouponKind.PERCENTAGE
        return CouponKind.FIXED


@dataclass(frozen=True)
class CouponEvaluation:
    code: str
    subtotal: Decimal
    discount: Decimal
    rule: CouponRule

    @property
    def total(self) -> Decimal:
        return self.subtotal - self.discount


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def normalize_code(code: str) -> str:
    return code.strip().upper()


def evaluate_rule(
    rule: CouponRule, subtotal: Decimal, now: Optional[datetime] = None
) -> CouponEvaluation:
    """Apply the eligibility checks in order, then compute the discount."""
    now = as_utc(now or utc_now())

    if not rule.active:
        raise CouponError(CouponRejection.INACTIVE)
    if now < rule.valid_from:
        raise CouponError(CouponRejection.NOT_YET_VALID)
    if now > rule.valid_to:
        raise CouponError(CouponRejection.EXPIRED)
    if rule.usage_limit is not None and rule.usage_count >= rule.usage_limit:
        raise CouponError(CouponRejection.USAGE_EXCEEDED)
    if rule.min_purchase is not None and subtotal < rule.min_purchase:
        raise CouponError(
            CouponRejection.BELOW_MIN_PURCHASE,
            f"Minimum purchase of {format_money(rule.min_purchase, get_settings().CURRENCY)}"
            " required to use this coupon.",
            min_purchase=str(rule.min_purchase),
        )

    discount = round_down(rule.discount.amount_for(subtotal))
    discount = max(ZERO, min(discount, subtotal))
    return CouponEvaluation(
        code=rule.code, subtotal=subtotal, discount=discount, rule=rule
    )


async def get_coupon_by_code(db: AsyncSession, code: str) -> Optional[Coupon]:
    """Case-insensitive lookup."""
    normalized = normalize_code(code)
    if not normalized:
        return None
    result = await db.execute(
        select(Coupon).where(func.upper(Coupon.code) == normalized)
    )
    return result.scalar_one_or_none()


async def evaluate_coupon(
    db: AsyncSession,
    code: str,
    subtotal: Decimal,
    now: Optional[datetime] = None,
) -> CouponEvaluation:
    """Look up ``code`` and evaluate it against ``subtotal``. Never writes."""
    coupon = await get_coupon_by_code(db, code)
    if coupon is None:
        raise CouponError(CouponRejection.NOT_FOUND)

    try:
        evaluation = evaluate_rule(CouponRule.from_model(coupon), subtotal, now)
    except CouponError as e:
        logger.info("Coupon %s rejected: %s", coupon.code, e.code)
        raise

    logger.debug(
        "Coupon %s applies to subtotal %s: discount %s",
        coupon.code,
        subtotal,
        evaluation.discount,
    )
    return evaluation
