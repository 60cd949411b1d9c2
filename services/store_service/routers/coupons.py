"""Store coupons router: evaluation only, never charges usage."""

from fastapi import APIRouter, Depends
from libs.db.session import get_async_db
from services.store_service.schemas import (
    CouponSummary,
    CouponValidateRequest,
    CouponValidateResponse,
    ErrorResponse,
)
from services.store_service.services.coupon_evaluator import (
    PercentageDiscount,
    evaluate_coupon,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


@router.post(
    "/coupons/validate",
    response_model=CouponValidateResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def validate_coupon(
    request: CouponValidateRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Check a coupon against a subtotal and preview the discount."""
    evaluation = await evaluate_coupon(db, request.code, request.subtotal)
    rule = evaluation.rule
    discount = rule.discount

    if isinstance(discount, PercentageDiscount):
        value, max_discount = discount.percent, discount.max_discount
    else:
        value, max_discount = discount.amount, None

    return CouponValidateResponse(
        code=evaluation.code,
        subtotal=evaluation.subtotal,
        discount=evaluation.discount,
        total=evaluation.total,
        coupon=CouponSummary(
            code=rule.code,
            description=rule.description,
            kind=rule.kind,
            value=value,
            max_discount=max_discount,
            min_purchase=rule.min_purchase,
        ),
    )
