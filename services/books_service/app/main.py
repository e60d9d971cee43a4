"""FastAPI application for the Books Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.books_service.routers import books_router


def create_app() -> FastAPI:
    """Create and configure the Books Service FastAPI app."""
    app = FastAPI(
        title="ReBooked Books Service",
        version="0.1.0",
        description="Textbook listings for ReBooked.",
    )
    add_observability_middleware(app, service_name="books")

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "books"}

    app.include_router(books_router)

    return app


app = create_app()
