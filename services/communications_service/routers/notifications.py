"""Notification feed for the signed-in user."""

import uuid

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.communications_service.schemas import (
    MarkAllReadResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from services.communications_service.services import notification_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/me", response_model=list[NotificationResponse])
async def list_my_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await notification_ops.list_notifications(
        db,
        current_user.user_id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )


@router.get("/me/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return {"unread": await notification_ops.count_unread(db, current_user.user_id)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await notification_ops.mark_read(db, notification_id, current_user.user_id)


@router.post("/me/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return {"updated": await notification_ops.mark_all_read(db, current_user.user_id)}
