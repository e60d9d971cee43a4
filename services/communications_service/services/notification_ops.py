"""In-app notification persistence and feed queries."""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from services.communications_service.models import Notification, NotificationType
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession


def add_notification(
    db: AsyncSession,
    *,
    user_auth_id: str,
    type: NotificationType,
    title: str,
    message: str,
    order_id: Optional[uuid.UUID] = None,
    metadata: Optional[dict] = None,
) -> Notification:
    """Stage a notification in the caller's transaction (the caller commits)."""
    notification = Notification(
        user_auth_id=user_auth_id,
        order_id=order_id,
        type=type,
        title=title,
        message=message,
        notification_metadata=metadata,
    )
    db.add(notification)
    return notification


async def list_notifications(
    db: AsyncSession,
    user_auth_id: str,
    *,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Notification]:
    query = select(Notification).where(Notification.user_auth_id == user_auth_id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    query = query.order_by(Notification.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_unread(db: AsyncSession, user_auth_id: str) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_auth_id == user_auth_id,
            Notification.read.is_(False),
        )
    )
    return result.scalar_one()


async def mark_read(
    db: AsyncSession, notification_id: uuid.UUID, user_auth_id: str
) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_auth_id == user_auth_id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
        )
    if not notification.read:
        notification.read = True
        notification.read_at = utc_now()
        await db.commit()
        await db.refresh(notification)
    return notification


async def mark_all_read(db: AsyncSession, user_auth_id: str) -> int:
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_auth_id == user_auth_id,
            Notification.read.is_(False),
        )
        .values(read=True, read_at=utc_now())
    )
    await db.commit()
    return result.rowcount or 0
