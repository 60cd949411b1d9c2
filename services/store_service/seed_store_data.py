"""Seed script for store test data.

Creates a handful of products (some with variants) and the WELCOME10 coupon
so the checkout flow can be exercised end-to-end.

Usage:
    python -m services.store_service.seed_store_data
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.config import AsyncSessionLocal, engine
from services.store_service.models import (
    Coupon,
    CouponKind,
    Product,
    ProductVariant,
)
from sqlalchemy import func, select


async def seed_store_data():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Seeding store data...")

        count = (await db.execute(select(func.count(Product.id)))).scalar()
        if count:
            print(f"Store data already exists ({count} products). Skipping seed.")
            return

        # =========================================================================
        # 1. PRODUCTS
        # =========================================================================
        headphones = Product(
            name="Wireless Headphones",
            slug="wireless-headphones",
            price=Decimal("2500"),
            stock=40,
        )
        kettle = Product(
            name="Electric Kettle",
            slug="electric-kettle",
            price=Decimal("1800"),
            stock=25,
        )
        tshirt = Product(
            name="Cotton T-Shirt",
            slug="cotton-t-shirt",
            price=Decimal("650"),
            stock=0,  # stock lives on the variants
        )
        products = [headphones, kettle, tshirt]
        db.add_all(products)
        await db.flush()

        # =========================================================================
        # 2. VARIANTS
        # =========================================================================
        variants = [
            ProductVariant(product_id=tshirt.id, name="M - Black", sku="TS-M-BLK", stock=30),
            ProductVariant(product_id=tshirt.id, name="L - Black", sku="TS-L-BLK", stock=20),
            ProductVariant(
                product_id=tshirt.id,
                name="XL - Black",
                sku="TS-XL-BLK",
                price=Decimal("700"),
                stock=10,
            ),
        ]
        db.add_all(variants)

        # =========================================================================
        # 3. COUPONS
        # =========================================================================
        now = utc_now()
        coupons = [
            Coupon(
                code="WELCOME10",
                description="10% off on first order",
                kind=CouponKind.PERCENTAGE,
                value=Decimal("10"),
                min_purchase=Decimal("1000"),
                max_discount=Decimal("500"),
                valid_from=now,
                valid_to=now + timedelta(days=30),
                usage_limit=100,
            ),
            Coupon(
                code="FLAT200",
                description="200 off any order",
                kind=CouponKind.FIXED,
                value=Decimal("200"),
                valid_from=now,
                valid_to=now + timedelta(days=30),
            ),
        ]
        db.add_all(coupons)

        await db.commit()
        print("=" * 60)
        print("Store data seeded successfully!")
        print("=" * 60)
        print(f"  Products: {len(products)}")
        print(f"  Variants: {len(variants)}")
        print(f"  Coupons: {len(coupons)}")
        print("=" * 60)


if __name__ == "__main__":
    asyncio.run(seed_store_data())
