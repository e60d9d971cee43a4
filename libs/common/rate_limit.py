"""Rate limiting for the public API.

Uses slowapi backed by Redis so limits hold across service instances.
Endpoints decorated here must accept a ``request: Request`` argument.
"""

from functools import lru_cache
from typing import Callable

from fastapi import FastAPI, Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def _get_client_ip(request: Request) -> str:
    """Client IP, honouring X-Forwarded-For from the edge proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def _get_user_or_ip(request: Request) -> str:
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.user_id}"
    return f"ip:{_get_client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=_get_user_or_ip,
        default_limits=["120/minute"],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI or settings.REDIS_URL,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """JSON 429 with a Retry-After header."""
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded: {exc.detail}",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": "60"},
    )


def install_rate_limiting(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


def checkout_limit(func: Callable) -> Callable:
    """Strict limit for payment initialization (5/minute)."""
    return limiter.limit("5/minute")(func)


def quote_limit(func: Callable) -> Callable:
    """Courier quote lookups hit third-party APIs (30/minute)."""
    return limiter.limit("30/minute")(func)
