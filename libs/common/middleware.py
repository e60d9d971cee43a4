"""Request tracing middleware shared by every service app.

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app, service_name="orders")
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/health", "/delivery/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds X-Request-ID to the logging context and logs each request's
    outcome and duration. Health checks are not logged.
    """

    def __init__(self, app: ASGIApp, service_name: str = "api"):
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in QUIET_PATHS
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled error while serving request",
                extra={
                    "extra_fields": {
                        "service": self.service_name,
                        "error": str(e),
                        "duration_ms": round(
                            (time.perf_counter() - started) * 1000, 2
                        ),
                    }
                },
            )
            raise
        else:
            if not quiet:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "%s %s -> %s",
                    request.method,
                    request.url.path,
                    response.status_code,
                    extra={
                        "extra_fields": {
                            "service": self.service_name,
                            "status_code": response.status_code,
                            "duration_ms": round(
                                (time.perf_counter() - started) * 1000, 2
                            ),
                        }
                    },
                )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()


def add_observability_middleware(app: FastAPI, service_name: str) -> None:
    """Configure logging and install the request context middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware, service_name=service_name)
