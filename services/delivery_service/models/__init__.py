"""Delivery Service models package."""

from services.delivery_service.models.core import Shipment
from services.delivery_service.models.enums import ShipmentStatus

__all__ = ["Shipment", "ShipmentStatus"]
