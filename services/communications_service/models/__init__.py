"""Communications Service models package."""

from services.communications_service.models.core import Notification
from services.communications_service.models.enums import NotificationType

__all__ = ["Notification", "NotificationType"]
