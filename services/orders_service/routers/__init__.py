"""Routers package."""

from services.orders_service.routers.disputes import router as disputes_router
from services.orders_service.routers.orders import router as orders_router

__all__ = ["disputes_router", "orders_router"]
