"""Routers package."""

from services.delivery_service.routers.delivery import router as delivery_router

__all__ = ["delivery_router"]
