"""Request tracing for the store API.

Every request gets an ``X-Request-ID`` (propagated from the caller when
present) that is bound to all log records emitted while it is handled, and a
single access-log line with status and duration. Checkout submissions also
log their ``Idempotency-Key`` so a replayed order can be matched to the
request that first placed it.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request context, log completion, echo the request id back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        fields = {}
        idempotency_key = request.headers.get("Idempotency-Key")
        if idempotency_key:
            fields["idempotency_key"] = idempotency_key

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            if request.url.path not in QUIET_PATHS:
                fields["status_code"] = response.status_code
                fields["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "%s %s -> %d",
                    request.method,
                    request.url.path,
                    response.status_code,
                    extra={"extra_fields": fields},
                )
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception as e:
            fields["error"] = str(e)
            fields["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
            logger.exception(
                "%s %s failed", request.method, request.url.path,
                extra={"extra_fields": fields},
            )
            raise
        finally:
            clear_request_context()


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install request tracing on ``app``."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Observability middleware initialized")
