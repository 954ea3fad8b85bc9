"""Notifications API: the signed-in customer's inbox."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import build_notifier, get_app_config, get_current_user_id, get_session
from marketplace.api.schemas.base import Pagination
from marketplace.api.schemas.notifications import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    RecentNotificationsResponse,
    SampleNotificationCreate,
    UnreadCountResponse,
    notification_to_schema,
)
from marketplace.config import AppConfig
from marketplace.core.exceptions import ForbiddenError

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None, pattern="^(read|unread)$"),
    type: Optional[str] = None,
    unread_only: bool = Query(False, alias="unreadOnly"),
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = build_notifier(request, session)
    result = await svc.list_for_user(
        user_id, page=page, limit=limit, status=status, type=type, unread_only=unread_only,
    )
    return NotificationListResponse(
        notifications=[notification_to_schema(n) for n in result["notifications"]],
        total=result["total"],
        unread_count=result["unread_count"],
        pagination=Pagination(**result["pagination"]),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = build_notifier(request, session)
    return UnreadCountResponse(unread_count=await svc.unread_count(user_id))


@router.get("/recent", response_model=RecentNotificationsResponse)
async def recent(
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = build_notifier(request, session)
    items, unread = await svc.recent(user_id)
    return RecentNotificationsResponse(
        notifications=[notification_to_schema(n) for n in items],
        unread_count=unread,
    )


@router.put("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = build_notifier(request, session)
    return MarkAllReadResponse(modified_count=await svc.mark_all_as_read(user_id))


@router.post("/test", response_model=NotificationResponse, status_code=201)
async def create_test_notification(
    body: SampleNotificationCreate,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    config: AppConfig = Depends(get_app_config),
    session: AsyncSession = Depends(get_session),
):
    """Create an order-less notification for the caller (non-production only)."""
    if config.is_production:
        raise ForbiddenError("Test notifications not allowed in production")
    svc = build_notifier(request, session)
    notification = await svc.create_custom(
        user_id,
        type=body.type,
        title=body.title or "Test Notification",
        message=body.message or "This is a test notification to verify the system is working.",
        priority=body.priority,
        data={"orderNumber": "TEST-001", "serviceName": "Test Service", "actionUrl": "/user/dashboard"},
    )
    return notification_to_schema(notification)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = build_notifier(request, session)
    return notification_to_schema(await svc.mark_as_read(notification_id, user_id))


@router.put("/{notification_id}/unread", response_model=NotificationResponse)
async def mark_unread(
    notification_id: UUID,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = build_notifier(request, session)
    return notification_to_schema(await svc.mark_as_unread(notification_id, user_id))


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: UUID,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = build_notifier(request, session)
    await svc.delete(notification_id, user_id)
