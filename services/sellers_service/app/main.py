"""FastAPI application for the Sellers Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.sellers_service.routers import sellers_router


def create_app() -> FastAPI:
    """Create and configure the Sellers Service FastAPI app."""
    app = FastAPI(
        title="ReBooked Sellers Service",
        version="0.1.0",
        description="Seller onboarding, banking and Paystack subaccounts for ReBooked.",
    )
    add_observability_middleware(app, service_name="sellers")

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "sellers"}

    app.include_router(sellers_router)

    return app


app = create_app()
