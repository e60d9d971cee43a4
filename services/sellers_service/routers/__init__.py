"""Routers package."""

from services.sellers_service.routers.sellers import router as sellers_router

__all__ = ["sellers_router"]
