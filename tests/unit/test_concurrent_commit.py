"""Racing commits on separate connections.

Only meaningful where each session holds its own connection and the database
takes row locks, so these run against a PostgreSQL ``DATABASE_URL`` and are
skipped on the in-memory SQLite default.
"""

import asyncio
from decimal import Decimal

import pytest
from libs.common.config import get_settings
from services.store_service.models import Coupon, Order, Product
from services.store_service.services.errors import CouponExhausted, InsufficientStock
from services.store_service.services.order_assembler import assemble_order
from services.store_service.services.order_commit import CommitResult, commit_order
from sqlalchemy import func, select
from tests.factories import CouponFactory, ProductFactory, customer, line

pytestmark = pytest.mark.skipif(
    get_settings().is_sqlite, reason="needs a database with row locking"
)


async def _race(session_factory, build_draft):
    async with session_factory() as first, session_factory() as second:
        drafts = [await build_draft(first), await build_draft(second)]
        return await asyncio.gather(
            commit_order(first, drafts[0]),
            commit_order(second, drafts[1]),
            return_exceptions=True,
        )


def _split(outcomes):
    won = [o for o in outcomes if isinstance(o, CommitResult)]
    lost = [o for o in outcomes if not isinstance(o, CommitResult)]
    return won, lost


@pytest.mark.asyncio
@pytest.mark.unit
async def test_parallel_checkouts_for_last_units(session_factory):
    """Stock 3, two parallel checkouts of 2: exactly one order, stock ends at 1."""
    product = ProductFactory.create(stock=3)
    async with session_factory() as db:
        db.add(product)
        await db.commit()

    outcomes = await _race(
        session_factory,
        lambda db: assemble_order(db, [line(product, 2)], customer()),
    )

    won, lost = _split(outcomes)
    assert len(won) == 1
    assert len(lost) == 1
    assert isinstance(lost[0], InsufficientStock)
    assert lost[0].available == 1

    async with session_factory() as db:
        stock = (
            await db.execute(select(Product.stock).where(Product.id == product.id))
        ).scalar_one()
        orders = (await db.execute(select(func.count()).select_from(Order))).scalar_one()
    assert stock == 1
    assert orders == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_parallel_checkouts_for_last_coupon_use(session_factory):
    """usage_limit 1, two parallel checkouts with the coupon: usage ends at 1."""
    product = ProductFactory.create(price=Decimal("1000"), stock=10)
    coupon = CouponFactory.create(code="RACE1", usage_limit=1)
    async with session_factory() as db:
        db.add_all([product, coupon])
        await db.commit()

    outcomes = await _race(
        session_factory,
        lambda db: assemble_order(db, [line(product)], customer(), "RACE1"),
    )

    won, lost = _split(outcomes)
    assert len(won) == 1
    assert len(lost) == 1
    assert isinstance(lost[0], CouponExhausted)

    async with session_factory() as db:
        usage = (
            await db.execute(select(Coupon.usage_count).where(Coupon.code == "RACE1"))
        ).scalar_one()
        stock = (
            await db.execute(select(Product.stock).where(Product.id == product.id))
        ).scalar_one()
    assert usage == 1
    assert stock == 9
