"""NotificationService: render, persist and deliver order notifications.

dispatch() is the strict path: a missing order or unknown event type
raises. notify() and notify_status_change() are what order and payment
flows call. They run dispatch() inside a SAVEPOINT and log any failure, so
a notification problem never rolls back or fails the order mutation that
triggered it.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import NotFoundError, ValidationError
from marketplace.domain.notifications import (
    DEFAULT_SERVICE_NAME,
    DEFAULT_TEMPLATES,
    TemplateRegistry,
    event_for_transition,
)
from marketplace.domain.statuses import (
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    OrderStatus,
    value_of,
)
from marketplace.infra.database.models.base import utcnow
from marketplace.infra.database.models.notification import Notification
from marketplace.infra.database.repositories import (
    NotificationRepository,
    OrderRepository,
    UserRepository,
    paginate,
)
from marketplace.integrations.email import LoggingEmailClient

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10
DEFAULT_RETENTION_DAYS = 30


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, text: str) -> None: ...


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


class NotificationService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        email_client: Optional[EmailSender] = None,
        templates: TemplateRegistry = DEFAULT_TEMPLATES,
    ) -> None:
        self._session = session
        self._repo = NotificationRepository(session)
        self._orders = OrderRepository(session)
        self._users = UserRepository(session)
        self._email = email_client or LoggingEmailClient()
        self._templates = templates

    # ── Dispatch ──────────────────────────────────────────────────

    async def dispatch(
        self,
        order_id: UUID,
        event_type: Union[str, NotificationType],
        extra: Optional[Mapping[str, Any]] = None,
    ) -> Notification:
        """Create one notification for *event_type* on the order.

        Not idempotent: two calls create two records. Email delivery errors
        are recorded on the notification and never raised.
        """
        order = await self._orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found", details={"order_id": str(order_id)})
        template = self._templates.get(event_type)

        extra = dict(extra or {})
        service_name = order.service_name or DEFAULT_SERVICE_NAME
        values: Dict[str, Any] = {
            "serviceName": service_name,
            "orderNumber": order.order_number,
            "amount": order.pricing_total if order.pricing_total is not None else 0,
            "customerName": order.customer_name,
            **extra,
        }
        title, message = template.render(values)

        user = await self._users.get_by_id(order.customer_user_id)
        email_enabled = True if user is None else user.email_notifications is not False
        recipient = user.email if user is not None else order.customer_email

        data = {
            "orderNumber": order.order_number,
            "serviceName": service_name,
            "statusFrom": extra.get("statusFrom"),
            "statusTo": extra.get("statusTo"),
            "assignedTo": extra.get("assignedTo"),
            "actionUrl": f"/user/dashboard?tab=bookings&order={order.order_number}",
            **extra,
        }
        notification = Notification(
            user_id=order.customer_user_id,
            order_id=order.id,
            type=template.type.value,
            title=title[:200],
            message=message[:1000],
            status=NotificationStatus.UNREAD.value,
            priority=template.priority.value,
            data=_jsonable(data),
            channel_in_app=True,
            channel_email=email_enabled,
            channel_sms=False,
            email_sent=False,
        )
        await self._repo.add(notification)
        logger.info(
            "NotificationService: %s created for order %s",
            template.type.value, order.order_number,
            extra={"order_number": order.order_number, "notification_type": template.type.value},
        )

        if notification.channel_email and recipient:
            await self._send_email(notification, recipient)
        return notification

    async def _send_email(self, notification: Notification, recipient: str) -> None:
        try:
            await self._email.send(recipient, notification.title, notification.message)
        except Exception as exc:
            logger.warning(
                "NotificationService: email for notification %s failed: %s",
                notification.id, exc,
                extra={"notification_type": notification.type},
            )
            notification.email_sent = False
            notification.email_error = str(exc)[:1000]
        else:
            notification.email_sent = True
            notification.email_sent_at = utcnow()
            notification.email_error = None
        await self._repo.save(notification)

    async def notify(
        self,
        order_id: UUID,
        event_type: Union[str, NotificationType],
        extra: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Notification]:
        """Best-effort dispatch. Returns None (and logs) on any failure."""
        try:
            async with self._session.begin_nested():
                return await self.dispatch(order_id, event_type, extra)
        except Exception:
            logger.exception(
                "NotificationService: %s for order %s failed",
                value_of(event_type), order_id,
                extra={"notification_type": value_of(event_type)},
            )
            return None

    async def notify_status_change(
        self,
        order_id: UUID,
        status_from: Union[str, OrderStatus],
        status_to: Union[str, OrderStatus],
    ) -> Optional[Notification]:
        event = event_for_transition(status_from, status_to)
        if event is None:
            logger.info(
                "NotificationService: no notification mapped for %s -> %s",
                value_of(status_from), value_of(status_to),
            )
            return None
        return await self.notify(
            order_id,
            event,
            {"statusFrom": value_of(status_from), "statusTo": value_of(status_to)},
        )

    async def create_custom(
        self,
        user_id: UUID,
        *,
        type: Union[str, NotificationType],
        title: str,
        message: str,
        priority: Union[str, NotificationPriority] = NotificationPriority.MEDIUM,
        data: Optional[Mapping[str, Any]] = None,
        order_id: Optional[UUID] = None,
    ) -> Notification:
        try:
            kind = NotificationType(value_of(type))
            level = NotificationPriority(value_of(priority))
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        notification = Notification(
            user_id=user_id,
            order_id=order_id,
            type=kind.value,
            title=title[:200],
            message=message[:1000],
            status=NotificationStatus.UNREAD.value,
            priority=level.value,
            data=_jsonable(dict(data or {})),
            channel_in_app=True,
            channel_email=False,
            channel_sms=False,
            email_sent=False,
        )
        return await self._repo.add(notification)

    # ── User queries ──────────────────────────────────────────────

    async def list_for_user(
        self,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        type: Optional[str] = None,
        unread_only: bool = False,
    ) -> Dict[str, Any]:
        skip, limit = paginate(page, limit)
        items, total = await self._repo.list_for_user(
            user_id, status=status, type=type, unread_only=unread_only, skip=skip, limit=limit,
        )
        unread = await self._repo.unread_count(user_id)
        return {
            "notifications": items,
            "total": total,
            "unread_count": unread,
            "pagination": {
                "current": max(int(page), 1),
                "limit": limit,
                "pages": -(-total // limit),
            },
        }

    async def unread_count(self, user_id: UUID) -> int:
        return await self._repo.unread_count(user_id)

    async def recent(self, user_id: UUID, limit: int = RECENT_LIMIT) -> Tuple[List[Notification], int]:
        items, _ = await self._repo.list_for_user(user_id, skip=0, limit=limit)
        return items, await self._repo.unread_count(user_id)

    async def _get_owned(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self._repo.get_for_user(notification_id, user_id)
        if notification is None:
            raise NotFoundError("Notification not found", details={"id": str(notification_id)})
        return notification

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self._get_owned(notification_id, user_id)
        notification.mark_as_read()
        return await self._repo.save(notification)

    async def mark_as_unread(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self._get_owned(notification_id, user_id)
        notification.mark_as_unread()
        return await self._repo.save(notification)

    async def mark_all_as_read(self, user_id: UUID) -> int:
        return await self._repo.mark_all_read(user_id)

    async def delete(self, notification_id: UUID, user_id: UUID) -> None:
        if not await self._repo.delete_for_user(notification_id, user_id):
            raise NotFoundError("Notification not found", details={"id": str(notification_id)})

    async def clean_old_notifications(self, days_old: int = DEFAULT_RETENTION_DAYS) -> int:
        """Delete read notifications created more than *days_old* days ago."""
        cutoff = utcnow() - timedelta(days=days_old)
        deleted = await self._repo.delete_read_before(cutoff)
        logger.info("NotificationService: cleaned %d old notifications (cutoff %s)", deleted, cutoff.isoformat())
        return deleted

