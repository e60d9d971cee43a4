"""FastAPI application for the Orders Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.orders_service.routers import disputes_router, orders_router


def create_app() -> FastAPI:
    """Create and configure the Orders Service FastAPI app."""
    app = FastAPI(
        title="ReBooked Orders Service",
        version="0.1.0",
        description="Order lifecycle, the 48-hour commit window, refunds and disputes.",
    )
    add_observability_middleware(app, service_name="orders")

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "orders"}

    app.include_router(orders_router)
    app.include_router(disputes_router)

    return app


app = create_app()
