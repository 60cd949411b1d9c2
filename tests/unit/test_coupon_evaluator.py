"""Unit tests for coupon evaluation.

Pure rule checks first, then the DB-backed lookup.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from services.store_service.models import Coupon, CouponKind
from services.store_service.services.coupon_evaluator import (
    CouponRule,
    FixedDiscount,
    PercentageDiscount,
    evaluate_coupon,
    evaluate_rule,
)
from services.store_service.services.errors import CouponError, CouponRejection
from sqlalchemy import select
from tests.factories import CouponFactory

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _rule(discount=None, **overrides):
    defaults = {
        "code": "TEST",
        "discount": discount or PercentageDiscount(Decimal("10")),
        "active": True,
        "valid_from": NOW - timedelta(days=1),
        "valid_to": NOW + timedelta(days=1),
    }
    defaults.update(overrides)
    return CouponRule(**defaults)


def _welcome10():
    return _rule(
        PercentageDiscount(Decimal("10"), max_discount=Decimal("500")),
        code="WELCOME10",
        min_purchase=Decimal("1000"),
    )


# ---------------------------------------------------------------------------
# Discount computation
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_percentage_discount_clamped_to_max_discount():
    """WELCOME10 on 5000: 10% is 500, max is 500 -> 500 off, total 4500."""
    evaluation = evaluate_rule(_welcome10(), Decimal("5000"), NOW)

    assert evaluation.discount == Decimal("500")
    assert evaluation.total == Decimal("4500")


@pytest.mark.unit
def test_percentage_discount_cap_applies_above_threshold():
    evaluation = evaluate_rule(_welcome10(), Decimal("9000"), NOW)

    assert evaluation.discount == Decimal("500")


@pytest.mark.unit
def test_percentage_discount_rounds_down_to_whole_units():
    rule = _rule(PercentageDiscount(Decimal("15")))

    evaluation = evaluate_rule(rule, Decimal("999"), NOW)

    # 149.85 -> 149
    assert evaluation.discount == Decimal("149")


@pytest.mark.unit
def test_fixed_discount_never_exceeds_subtotal():
    rule = _rule(FixedDiscount(Decimal("300")))

    assert evaluate_rule(rule, Decimal("1000"), NOW).discount == Decimal("300")
    evaluation = evaluate_rule(rule, Decimal("200"), NOW)
    assert evaluation.discount == Decimal("200")
    assert evaluation.total == Decimal("0")


@pytest.mark.unit
def test_percentage_over_hundred_still_clamped_to_subtotal():
    rule = _rule(PercentageDiscount(Decimal("150")))

    assert evaluate_rule(rule, Decimal("400"), NOW).discount == Decimal("400")


# ---------------------------------------------------------------------------
# Rejections, in check order
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_below_min_purchase_rejected():
    """WELCOME10 on 900 fails before any discount is computed."""
    with pytest.raises(CouponError) as exc_info:
        evaluate_rule(_welcome10(), Decimal("900"), NOW)

    assert exc_info.value.reason == CouponRejection.BELOW_MIN_PURCHASE
    assert exc_info.value.code == "BELOW_MIN_PURCHASE"
    assert "BDT 1,000" in exc_info.value.message


@pytest.mark.unit
def test_min_purchase_is_inclusive():
    assert evaluate_rule(_welcome10(), Decimal("1000"), NOW).discount == Decimal("100")


@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"active": False}, CouponRejection.INACTIVE),
        ({"valid_from": NOW + timedelta(hours=1)}, CouponRejection.NOT_YET_VALID),
        ({"valid_to": NOW - timedelta(hours=1)}, CouponRejection.EXPIRED),
        ({"usage_limit": 5, "usage_count": 5}, CouponRejection.USAGE_EXCEEDED),
    ],
)
def test_rule_rejections(overrides, reason):
    with pytest.raises(CouponError) as exc_info:
        evaluate_rule(_rule(**overrides), Decimal("5000"), NOW)

    assert exc_info.value.reason == reason


@pytest.mark.unit
def test_inactive_checked_before_expiry():
    rule = _rule(active=False, valid_to=NOW - timedelta(days=1))

    with pytest.raises(CouponError) as exc_info:
        evaluate_rule(rule, Decimal("5000"), NOW)

    assert exc_info.value.reason == CouponRejection.INACTIVE


@pytest.mark.unit
def test_usage_below_limit_is_accepted():
    rule = _rule(usage_limit=5, usage_count=4)

    assert evaluate_rule(rule, Decimal("100"), NOW).discount == Decimal("10")


# ---------------------------------------------------------------------------
# DB-backed evaluation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_evaluate_coupon_is_case_insensitive(db_session):
    db_session.add(CouponFactory.welcome10())
    await db_session.commit()

    evaluation = await evaluate_coupon(db_session, "  welcome10 ", Decimal("5000"))

    assert evaluation.code == "WELCOME10"
    assert evaluation.discount == Decimal("500")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_evaluate_coupon_unknown_code(db_session):
    with pytest.raises(CouponError) as exc_info:
        await evaluate_coupon(db_session, "NOPE", Decimal("5000"))

    assert exc_info.value.reason == CouponRejection.NOT_FOUND
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
@pytest.mark.unit
async def test_evaluate_coupon_twice_is_identical_and_read_only(db_session):
    coupon = CouponFactory.create(
        code="TWICE", kind=CouponKind.FIXED, value=Decimal("150"), usage_limit=1
    )
    db_session.add(coupon)
    await db_session.commit()

    first = await evaluate_coupon(db_session, "TWICE", Decimal("1200"))
    second = await evaluate_coupon(db_session, "TWICE", Decimal("1200"))

    assert first.discount == second.discount == Decimal("150")
    result = await db_session.execute(
        select(Coupon.usage_count).where(Coupon.code == "TWICE")
    )
    assert result.scalar_one() == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_fixed_rule_from_model_ignores_max_discount(db_session):
    coupon = CouponFactory.create(
        code="FIXED50",
        kind=CouponKind.FIXED,
        value=Decimal("50"),
        max_discount=Decimal("10"),
    )
    db_session.add(coupon)
    await db_session.commit()

    evaluation = await evaluate_coupon(db_session, "fixed50", Decimal("400"))

    assert isinstance(evaluation.rule.discount, FixedDiscount)
    assert evaluation.discount == Decimal("50")
