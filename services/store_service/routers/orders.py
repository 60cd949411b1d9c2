"""Store orders router: checkout, order detail, guest tracking."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response, status
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.schemas import (
    ErrorResponse,
    OrderCreate,
    OrderPlacedResponse,
    OrderResponse,
    OrderTrackingResponse,
)
from services.store_service.services.cart import LineRequest
from services.store_service.services.checkout import CheckoutRequest, place_order
from services.store_service.services.order_assembler import CustomerInfo
from services.store_service.services.order_ops import (
    get_order_by_number,
    list_orders_by_phone,
    list_orders_for_user,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post(
    "/orders",
    response_model=OrderPlacedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse},
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def create_order(
    order_in: OrderCreate,
    response: Response,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order. Prices, discount and stock are all re-checked server-side."""
    request = CheckoutRequest(
        lines=tuple(
            LineRequest(
                product_id=item.product_id,
                variant_id=item.variant_id,
                quantity=item.quantity,
            )
            for item in order_in.items
        ),
        customer=CustomerInfo(
            name=order_in.customer_name,
            phone=order_in.customer_phone,
            address=order_in.customer_address,
            payment_method=order_in.payment_method,
            bkash_number=order_in.bkash_number,
            bkash_trx_id=order_in.bkash_trx_id,
        ),
        coupon_code=order_in.coupon_code,
        idempotency_key=order_in.idempotency_key or idempotency_key,
        user_id=current_user.user_id if current_user else None,
    )
    result = await place_order(db, request)
    if result.replayed:
        response.status_code = status.HTTP_200_OK
    return result.order


# ============================================================================
# ORDERS
# ============================================================================


@router.get("/orders", response_model=list[OrderResponse])
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the signed-in customer's orders, newest first."""
    return await list_orders_for_user(db, current_user.user_id)


@router.get("/orders/track", response_model=OrderTrackingResponse)
async def track_orders(
    phone: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_async_db),
):
    """All orders for a phone number, newest first (guest tracking)."""
    orders = await list_orders_by_phone(db, phone)
    return OrderTrackingResponse(orders=orders)


@router.get("/orders/{order_number}", response_model=OrderResponse)
async def get_order(
    order_number: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Get order by order number."""
    return await get_order_by_number(db, order_number)
