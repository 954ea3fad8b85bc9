"""Notification schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from marketplace.api.schemas.base import CamelModel, Pagination
from marketplace.infra.database.models.notification import Notification


class Channels(CamelModel):
    in_app: bool
    email: bool
    sms: bool


class EmailStatus(CamelModel):
    sent: bool
    sent_at: Optional[datetime] = None
    error: Optional[str] = None


class NotificationResponse(CamelModel):
    id: UUID
    user_id: UUID
    order_id: Optional[UUID] = None
    type: str
    title: str
    message: str
    status: str
    priority: str
    data: Dict[str, Any] = {}
    channels: Channels
    email_status: EmailStatus
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NotificationListResponse(CamelModel):
    notifications: List[NotificationResponse]
    total: int
    unread_count: int
    pagination: Pagination


class UnreadCountResponse(CamelModel):
    unread_count: int


class RecentNotificationsResponse(CamelModel):
    notifications: List[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(CamelModel):
    modified_count: int


class SampleNotificationCreate(CamelModel):
    title: Optional[str] = Field(None, max_length=200)
    message: Optional[str] = Field(None, max_length=1000)
    type: str = "order_created"
    priority: str = "medium"


def notification_to_schema(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        user_id=n.user_id,
        order_id=n.order_id,
        type=n.type,
        title=n.title,
        message=n.message,
        status=n.status,
        priority=n.priority,
        data=n.data or {},
        channels=Channels(in_app=n.channel_in_app, email=n.channel_email, sms=n.channel_sms),
        email_status=EmailStatus(sent=bool(n.email_sent), sent_at=n.email_sent_at, error=n.email_error),
        read_at=n.read_at,
        created_at=n.created_at,
        updated_at=n.updated_at,
    )
