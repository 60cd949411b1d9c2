"""Unit tests for place_order: replay, retry after a lost race."""

from decimal import Decimal

import pytest
from services.store_service.models import Product
from services.store_service.services import checkout as checkout_module
from services.store_service.services.checkout import CheckoutRequest, place_order
from services.store_service.services.errors import (
    CouponInvalid,
    InsufficientStock,
    ProductUnavailable,
)
from sqlalchemy import update
from tests.conftest import override_setting
from tests.factories import CouponFactory, ProductFactory, customer, line


def _request(*lines, **overrides) -> CheckoutRequest:
    defaults = {"lines": tuple(lines), "customer": customer()}
    defaults.update(overrides)
    return CheckoutRequest(**defaults)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_place_order_happy_path(db_session):
    product = ProductFactory.create(price=Decimal("2500"), stock=5)
    db_session.add_all([product, CouponFactory.welcome10()])
    await db_session.commit()

    result = await place_order(
        db_session, _request(line(product, 2), coupon_code="WELCOME10", user_id="u-1")
    )

    assert result.replayed is False
    assert result.order.total == Decimal("4500")
    assert result.order.user_id == "u-1"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_place_order_replays_idempotency_key(db_session):
    product = ProductFactory.create(stock=5)
    db_session.add(product)
    await db_session.commit()

    first = await place_order(db_session, _request(line(product), idempotency_key="k-1"))
    second = await place_order(db_session, _request(line(product), idempotency_key="k-1"))

    assert second.replayed is True
    assert second.order.id == first.order.id
    await db_session.refresh(product)
    assert product.stock == 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_twin_submit_past_key_lookup_is_still_a_replay(db_session, monkeypatch):
    """Both requests miss the key lookup; the loser gets the winner's order back."""
    product = ProductFactory.create(stock=5)
    db_session.add(product)
    await db_session.commit()

    first = await place_order(
        db_session, _request(line(product), idempotency_key="k-race")
    )
    first_id = first.order.id

    async def lookup_misses(db, key):
        return None

    monkeypatch.setattr(checkout_module, "find_order_by_idempotency_key", lookup_misses)

    second = await place_order(
        db_session, _request(line(product), idempotency_key="k-race")
    )

    assert second.replayed is True
    assert second.order.id == first_id
    await db_session.refresh(product)
    assert product.stock == 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_lost_race_is_retried_against_fresh_state(db_session, monkeypatch):
    product = ProductFactory.create(stock=5)
    db_session.add(product)
    await db_session.commit()

    real_commit = checkout_module.commit_order
    calls = []

    async def flaky_commit(db, draft):
        calls.append(draft.order_number)
        if len(calls) == 1:
            raise InsufficientStock(
                product.id, None, requested=1, available=0, name=product.name
            )
        return await real_commit(db, draft)

    monkeypatch.setattr(checkout_module, "commit_order", flaky_commit)

    result = await place_order(db_session, _request(line(product)))

    assert len(calls) == 2
    # Re-assembled, so a fresh draft was committed
    assert calls[0] != calls[1]
    assert result.order.order_number == calls[1]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_retry_reports_precise_error_when_stock_is_gone(db_session, monkeypatch):
    product = ProductFactory.create(stock=3)
    db_session.add(product)
    await db_session.commit()

    real_commit = checkout_module.commit_order
    calls = []

    async def rival_buys_first(db, draft):
        calls.append(draft.order_number)
        if len(calls) == 1:
            await db.execute(
                update(Product).where(Product.id == product.id).values(stock=1)
            )
            await db.commit()
        return await real_commit(db, draft)

    monkeypatch.setattr(checkout_module, "commit_order", rival_buys_first)

    with pytest.raises(InsufficientStock) as exc_info:
        await place_order(db_session, _request(line(product, 2)))

    # Second failure came from re-assembly, not another commit attempt
    assert len(calls) == 1
    assert exc_info.value.available == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_no_retry_when_disabled(db_session, monkeypatch):
    product = ProductFactory.create(stock=5)
    db_session.add(product)
    await db_session.commit()

    calls = []

    async def always_lose(db, draft):
        calls.append(draft.order_number)
        raise InsufficientStock(product.id, None, requested=1, available=0)

    monkeypatch.setattr(checkout_module, "commit_order", always_lose)

    with override_setting("CHECKOUT_RETRY_ATTEMPTS", 0):
        with pytest.raises(InsufficientStock):
            await place_order(db_session, _request(line(product)))

    assert len(calls) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_non_retryable_commit_error_is_not_retried(db_session, monkeypatch):
    product = ProductFactory.create(stock=5)
    db_session.add(product)
    await db_session.commit()

    calls = []

    async def unavailable(db, draft):
        calls.append(draft.order_number)
        raise ProductUnavailable(product.id)

    monkeypatch.setattr(checkout_module, "commit_order", unavailable)

    with pytest.raises(ProductUnavailable):
        await place_order(db_session, _request(line(product)))

    assert len(calls) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_invalid_coupon_never_reaches_commit(db_session, monkeypatch):
    product = ProductFactory.create(price=Decimal("900"))
    db_session.add_all([product, CouponFactory.welcome10()])
    await db_session.commit()

    async def must_not_commit(db, draft):
        raise AssertionError("commit attempted")

    monkeypatch.setattr(checkout_module, "commit_order", must_not_commit)

    with pytest.raises(CouponInvalid):
        await place_order(db_session, _request(line(product), coupon_code="WELCOME10"))
