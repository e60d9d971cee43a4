"""FastAPI application for the Payments Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import install_rate_limiting
from services.payments_service.routers import (
    admin_router,
    checkout_router,
    webhooks_router,
)


def create_app() -> FastAPI:
    """Create and configure the Payments Service FastAPI app."""
    app = FastAPI(
        title="ReBooked Payments Service",
        version="0.1.0",
        description="Paystack split checkout, webhooks, refunds and seller payouts.",
    )
    add_observability_middleware(app, service_name="payments")
    install_rate_limiting(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "payments"}

    app.include_router(checkout_router)
    app.include_router(webhooks_router)
    app.include_router(admin_router)

    return app


app = create_app()
