import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.communications_service.models import NotificationType


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    order_id: Optional[uuid.UUID] = None
    type: NotificationType
    title: str
    message: str
    read: bool
    read_at: Optional[datetime] = None
    metadata: Optional[dict] = Field(None, validation_alias="notification_metadata")
    created_at: datetime


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int
