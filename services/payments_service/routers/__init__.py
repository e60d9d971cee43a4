"""Routers package."""

from services.payments_service.routers.admin import router as admin_router
from services.payments_service.routers.checkout import router as checkout_router
from services.payments_service.routers.webhooks import router as webhooks_router

__all__ = [
    "admin_router",
    "checkout_router",
    "webhooks_router",
]
