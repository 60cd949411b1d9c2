"""FastAPI application for the Store Service."""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from services.store_service.routers import (
    admin_orders_router,
    coupons_router,
    orders_router,
)
from services.store_service.services.errors import StoreError
from sqlalchemy.exc import SQLAlchemyError

logger = get_logger(__name__)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Render reason-coded store errors as ``{"detail", "code", ...}``."""
    return JSONResponse(
        status_code=exc.status_code, content=jsonable_encoder(exc.to_dict())
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content={
            "detail": "The store is temporarily unavailable. Please try again.",
            "code": "SERVICE_UNAVAILABLE",
        },
    )


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    app = FastAPI(
        title="Storefront Order Service",
        version="0.1.0",
        description="Checkout, coupon validation, order tracking and order status management.",
    )
    add_observability_middleware(app)

    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    # Public store routes (checkout, coupons, orders)
    app.include_router(orders_router, prefix="/store")
    app.include_router(coupons_router, prefix="/store")

    # Staff routes (order management)
    app.include_router(admin_orders_router, prefix="/admin/store")

    return app


app = create_app()
