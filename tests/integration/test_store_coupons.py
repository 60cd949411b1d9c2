"""Integration tests for POST /store/coupons/validate."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from services.store_service.models import CouponKind
from tests.factories import CouponFactory


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_percentage_coupon(client, db_session):
    db_session.add(CouponFactory.welcome10())
    await db_session.commit()

    response = await client.post(
        "/store/coupons/validate", json={"code": "welcome10", "subtotal": 5000}
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["valid"] is True
    assert data["code"] == "WELCOME10"
    assert data["discount"] == 500
    assert data["total"] == 4500
    assert data["coupon"]["kind"] == "percentage"
    assert data["coupon"]["max_discount"] == 500


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_fixed_coupon(client, db_session):
    db_session.add(
        CouponFactory.create(code="FLAT200", kind=CouponKind.FIXED, value=Decimal("200"))
    )
    await db_session.commit()

    response = await client.post(
        "/store/coupons/validate", json={"code": "FLAT200", "subtotal": 150}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["discount"] == 150
    assert data["total"] == 0
    assert data["coupon"]["max_discount"] is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_below_min_purchase(client, db_session):
    db_session.add(CouponFactory.welcome10())
    await db_session.commit()

    response = await client.post(
        "/store/coupons/validate", json={"code": "WELCOME10", "subtotal": 900}
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "BELOW_MIN_PURCHASE"
    assert Decimal(data["min_purchase"]) == Decimal("1000")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_unknown_code(client):
    response = await client.post(
        "/store/coupons/validate", json={"code": "NOPE", "subtotal": 900}
    )

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_expired_coupon(client, db_session):
    now = datetime.now(timezone.utc)
    db_session.add(
        CouponFactory.create(
            code="OLD",
            valid_from=now - timedelta(days=30),
            valid_to=now - timedelta(days=1),
        )
    )
    await db_session.commit()

    response = await client.post(
        "/store/coupons/validate", json={"code": "OLD", "subtotal": 900}
    )

    assert response.status_code == 400
    assert response.json()["code"] == "EXPIRED"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_does_not_charge_usage(client, db_session):
    coupon = CouponFactory.create(code="ONE", usage_limit=1)
    db_session.add(coupon)
    await db_session.commit()

    for _ in range(3):
        response = await client.post(
            "/store/coupons/validate", json={"code": "ONE", "subtotal": 1000}
        )
        assert response.status_code == 200

    await db_session.refresh(coupon)
    assert coupon.usage_count == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_rejects_negative_subtotal(client):
    response = await client.post(
        "/store/coupons/validate", json={"code": "ANY", "subtotal": -1}
    )

    assert response.status_code == 422
