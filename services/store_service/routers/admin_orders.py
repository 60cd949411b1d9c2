"""Staff order management: listing, detail, status changes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_staff
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import OrderStatus, PaymentStatus
from services.store_service.schemas import (
    ErrorResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from services.store_service.services.order_ops import (
    get_order,
    list_orders,
    update_order_status,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


@router.get("/orders", response_model=OrderListResponse)
async def list_all_orders(
    order_status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """List all orders."""
    orders, total = await list_orders(
        db,
        order_status=order_status,
        payment_status=payment_status,
        page=page,
        page_size=page_size,
    )
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order_admin(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """Get order detail (staff)."""
    return await get_order(db, order_id)


@router.patch(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def patch_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """Update order and/or payment status."""
    return await update_order_status(
        db,
        order_id,
        actor=current_user.user_id,
        order_status=status_update.order_status,
        payment_status=status_update.payment_status,
        notes=status_update.notes,
        force=status_update.force,
    )
