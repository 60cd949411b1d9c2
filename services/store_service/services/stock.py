"""Stock counters on products and variants.

Every change is a single conditional UPDATE so concurrent checkouts never
read-modify-write the same counter: the database row lock serialises them and
the ``stock >= n`` predicate is re-checked against the committed value.
A variant is only sellable while its parent product is active too.
"""

import uuid
from typing import Optional

from services.store_service.models import Product, ProductVariant
from sqlalchemy import and_, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession


def _target(variant_id: Optional[uuid.UUID]):
    return ProductVariant if variant_id is not None else Product


def _parent_active(product_id: uuid.UUID):
    return and_(
        ProductVariant.product_id == product_id,
        exists(
            select(Product.id).where(
                Product.id == ProductVariant.product_id,
                Product.is_active.is_(True),
            )
        ),
    )


async def decrement_stock(
    db: AsyncSession,
    product_id: uuid.UUID,
    variant_id: Optional[uuid.UUID],
    quantity: int,
) -> bool:
    """Take ``quantity`` units; False when the row is gone, inactive or short."""
    model = _target(variant_id)
    row_id = variant_id if variant_id is not None else product_id
    conditions = [
        model.id == row_id,
        model.is_active.is_(True),
        model.stock >= quantity,
    ]
    if variant_id is not None:
        conditions.append(_parent_active(product_id))
    result = await db.execute(
        update(model)
        .where(*conditions)
        .values(stock=model.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def restore_stock(
    db: AsyncSession,
    product_id: uuid.UUID,
    variant_id: Optional[uuid.UUID],
    quantity: int,
) -> bool:
    """Give ``quantity`` units back (order cancelled). False if the row is gone."""
    model = _target(variant_id)
    row_id = variant_id if variant_id is not None else product_id
    result = await db.execute(
        update(model)
        .where(model.id == row_id)
        .values(stock=model.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def read_stock(
    db: AsyncSession,
    product_id: uuid.UUID,
    variant_id: Optional[uuid.UUID],
) -> Optional[tuple[int, bool]]:
    """Current ``(stock, is_active)`` straight from the row, or None.

    For a variant, ``is_active`` is False when either the variant or its
    parent product has been taken off sale.
    """
    if variant_id is None:
        query = select(Product.stock, Product.is_active).where(Product.id == product_id)
    else:
        query = (
            select(
                ProductVariant.stock,
                and_(ProductVariant.is_active, Product.is_active).label("is_active"),
            )
            .join(Product, Product.id == ProductVariant.product_id)
            .where(
                ProductVariant.id == variant_id,
                ProductVariant.product_id == product_id,
            )
        )
    row = (await db.execute(query)).first()
    return None if row is None else (row.stock, bool(row.is_active))
