"""Notification ORM model: one row per dispatched order event."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.domain.statuses import NotificationPriority, NotificationStatus
from marketplace.infra.database.models.base import Base, TimestampMixin, _uuid_pk, utcnow


class Notification(Base, TimestampMixin):
    """In-app notification with per-channel delivery state.

    ``read_at`` is set exactly when ``status == "read"``; use
    mark_as_read() / mark_as_unread() rather than assigning either field.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_id_created_at", "user_id", "created_at"),
        Index("ix_notifications_user_id_status", "user_id", "status"),
        Index("ix_notifications_order_id", "order_id"),
        Index("ix_notifications_type", "type"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=True,
    )
    """NULL only for test notifications."""

    type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    status: Mapped[str] = mapped_column(
        String(8), nullable=False, default=NotificationStatus.UNREAD.value,
    )
    priority: Mapped[str] = mapped_column(
        String(8), nullable=False, default=NotificationPriority.MEDIUM.value,
    )
    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    channel_in_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    channel_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    channel_sms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    email_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def mark_as_read(self, now: Optional[datetime] = None) -> None:
        self.status = NotificationStatus.READ.value
        self.read_at = now or utcnow()

    def mark_as_unread(self) -> None:
        self.status = NotificationStatus.UNREAD.value
        self.read_at = None

    @property
    def is_read(self) -> bool:
        return self.status == NotificationStatus.READ.value

    def __repr__(self) -> str:
        return f"Notification(id={self.id!r}, type={self.type!r}, status={self.status!r})"
