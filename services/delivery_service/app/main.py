"""FastAPI application for the Delivery Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import install_rate_limiting
from services.delivery_service.routers import delivery_router


def create_app() -> FastAPI:
    """Create and configure the Delivery Service FastAPI app."""
    app = FastAPI(
        title="ReBooked Delivery Service",
        version="0.1.0",
        description="Courier quotes, bookings and tracking for ReBooked.",
    )
    add_observability_middleware(app, service_name="delivery")
    install_rate_limiting(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "delivery"}

    app.include_router(delivery_router)

    return app


app = create_app()
