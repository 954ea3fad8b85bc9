"""OrderService: order placement and every lifecycle mutation after it.

Each mutation flushes the order before any notification goes out, so a
persistence error (including a stale version) reaches the caller while a
notification error never does.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from marketplace.domain.order_numbers import generate_order_number
from marketplace.domain.pricing import calculate_pricing
from marketplace.domain.statuses import (
    CUSTOMER_CANCELLABLE,
    ORDER_STATUS_VALUES,
    REVISION_ALLOWED_STATUS,
    AttachmentCategory,
    AuthorKind,
    NoteType,
    NotificationType,
    OrderStatus,
    Timeline,
    value_of,
)
from marketplace.infra.database.models.notification import Notification
from marketplace.infra.database.models.order import Order
from marketplace.infra.database.repositories import OrderRepository, ProductRepository, paginate
from marketplace.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

_ORDER_NUMBER_ATTEMPTS = 5
_TIMELINES = frozenset(t.value for t in Timeline)


class OrderService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        notifier: Optional[NotificationService] = None,
        order_numbers: Callable[[], str] = generate_order_number,
    ) -> None:
        self._repo = OrderRepository(session)
        self._products = ProductRepository(session)
        self._notifier = notifier or NotificationService(session)
        self._order_numbers = order_numbers

    # ── Lookups ───────────────────────────────────────────────────

    async def get_order(self, order_number: str) -> Order:
        order = await self._repo.get_by_order_number(order_number)
        if order is None:
            raise NotFoundError("Order not found", details={"order_number": order_number})
        return order

    async def get_customer_order(self, order_number: str, user_id: UUID) -> Order:
        order = await self._repo.get_for_customer(order_number, user_id)
        if order is None:
            raise NotFoundError("Order not found", details={"order_number": order_number})
        return order

    async def list_customer_orders(
        self,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
    ) -> Tuple[List[Order], int]:
        skip, limit = paginate(page, limit)
        return await self._repo.list_for_customer(user_id, status=status, skip=skip, limit=limit)

    async def list_admin(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[Order], int, Dict[str, int]]:
        skip, limit = paginate(page, limit)
        orders, total = await self._repo.list_admin(
            status=status,
            assigned_to=assigned_to,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            skip=skip,
            limit=limit,
        )
        return orders, total, await self._repo.status_counts()

    # ── Placement ─────────────────────────────────────────────────

    async def _next_order_number(self) -> str:
        for _ in range(_ORDER_NUMBER_ATTEMPTS):
            candidate = self._order_numbers()
            if not await self._repo.order_number_exists(candidate):
                return candidate
            logger.warning("OrderService: order number %s already taken, retrying", candidate)
        raise ConflictError("Could not allocate a unique order number")

    async def create_order(
        self,
        user_id: UUID,
        *,
        service_id: UUID,
        customer: Dict[str, Any],
        project_description: str,
        timeline: str,
        additional_requirements: Optional[str] = None,
    ) -> Order:
        """Snapshot customer and product, price from the product's current price, persist as pending."""
        product = await self._products.get_active(service_id)
        if product is None:
            raise NotFoundError("Service not found", details={"service_id": str(service_id)})

        quote = calculate_pricing(product.price, timeline)
        stored_timeline = timeline if timeline in _TIMELINES else Timeline.STANDARD.value

        order = Order.create(
            order_number=await self._next_order_number(),
            customer_user_id=user_id,
            customer=customer,
            product=product,
            project_description=project_description,
            timeline=stored_timeline,
            quote=quote,
            additional_requirements=additional_requirements,
        )
        await self._repo.add(order)
        logger.info(
            "OrderService: created order %s (%s, total %s)",
            order.order_number, product.name, quote.total,
            extra={"order_number": order.order_number},
        )
        await self._notifier.notify(order.id, NotificationType.ORDER_CREATED)
        return order

    # ── Customer actions ──────────────────────────────────────────

    async def cancel_order(self, order_number: str, user_id: UUID, reason: Optional[str] = None) -> Order:
        order = await self.get_customer_order(order_number, user_id)
        if order.status not in CUSTOMER_CANCELLABLE:
            raise ConflictError(
                "Order cannot be cancelled at this stage",
                details={"status": order.status},
            )
        previous = order.status
        order.add_status_history(OrderStatus.CANCELLED, reason or "Cancelled by customer", str(user_id))
        await self._repo.save(order)
        logger.info("OrderService: order %s cancelled by customer", order_number, extra={"order_number": order_number})
        await self._notifier.notify_status_change(order.id, previous, OrderStatus.CANCELLED)
        return order

    async def submit_feedback(
        self,
        order_number: str,
        user_id: UUID,
        rating: int,
        comment: Optional[str] = None,
    ) -> Order:
        order = await self.get_customer_order(order_number, user_id)
        order.submit_feedback(rating, comment)
        return await self._repo.save(order)

    async def request_revision(self, order_number: str, user_id: UUID, description: str) -> Order:
        order = await self.get_customer_order(order_number, user_id)
        if order.status != REVISION_ALLOWED_STATUS:
            raise ConflictError(
                "Revisions can only be requested while the order is under review",
                details={"status": order.status},
            )
        previous = order.status
        order.add_revision(description)
        order.add_status_history(OrderStatus.REVISION_REQUESTED, "Revision requested by customer", str(user_id))
        await self._repo.save(order)
        await self._notifier.notify_status_change(order.id, previous, OrderStatus.REVISION_REQUESTED)
        return order

    async def add_customer_note(self, order_number: str, user_id: UUID, message: str) -> Order:
        order = await self.get_customer_order(order_number, user_id)
        order.add_note(message, str(user_id), AuthorKind.USER, NoteType.CLIENT)
        return await self._repo.save(order)

    async def add_attachment(
        self,
        order_number: str,
        user_id: UUID,
        *,
        filename: str,
        original_name: str,
        file_type: str,
        file_size: int,
        category: str = AttachmentCategory.REQUIREMENT.value,
    ) -> Order:
        order = await self.get_customer_order(order_number, user_id)
        order.add_attachment(
            filename=filename,
            original_name=original_name,
            file_type=file_type,
            file_size=file_size,
            uploaded_by=str(user_id),
            uploader_kind=AuthorKind.USER,
            category=category,
        )
        return await self._repo.save(order)

    # ── Admin actions ─────────────────────────────────────────────

    async def update_status(
        self,
        order_number: str,
        status: str,
        *,
        note: Optional[str] = None,
        admin_id: Optional[str] = None,
    ) -> Order:
        """Admin status change. Any enum value is accepted, legal transition or not."""
        if status not in ORDER_STATUS_VALUES:
            raise ValidationError("Invalid status", details={"status": status})
        order = await self.get_order(order_number)
        previous = order.status

        order.add_status_history(status, note, admin_id)
        if status == OrderStatus.IN_PROGRESS.value:
            order.start_work()
        if status == OrderStatus.COMPLETED.value:
            order.set_actual_delivery_date()
        await self._repo.save(order)
        logger.info(
            "OrderService: order %s %s -> %s",
            order_number, previous, status,
            extra={"order_number": order_number},
        )

        if previous != status:
            await self._notifier.notify_status_change(order.id, previous, status)
        return order

    async def assign(self, order_number: str, assigned_to: str, *, admin_id: Optional[str] = None) -> Order:
        order = await self.get_order(order_number)
        order.assigned_to = assigned_to
        order.add_status_history(order.status, "Order assigned to team member", admin_id)
        await self._repo.save(order)
        await self._notifier.notify(order.id, NotificationType.ORDER_ASSIGNED, {"assignedTo": assigned_to})
        return order

    async def add_admin_note(
        self,
        order_number: str,
        message: str,
        *,
        note_type: str = NoteType.INTERNAL.value,
        admin_id: Optional[str] = None,
    ) -> Order:
        order = await self.get_order(order_number)
        order.add_note(message, admin_id, AuthorKind.ADMIN, note_type)
        await self._repo.save(order)
        if value_of(note_type) == NoteType.CLIENT.value:
            await self._notifier.notify(order.id, NotificationType.MESSAGE_RECEIVED)
        return order

    async def send_test_notification(
        self,
        order_number: str,
        event_type: str,
        *,
        production: bool = False,
    ) -> Notification:
        """Strict dispatch for manual checks; errors are raised, not swallowed."""
        if production:
            raise ForbiddenError("Test notifications not allowed in production")
        order = await self.get_order(order_number)
        return await self._notifier.dispatch(order.id, event_type)
