"""Routers package."""

from services.books_service.routers.books import router as books_router

__all__ = ["books_router"]
