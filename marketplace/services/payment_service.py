"""PaymentService: PayPal checkout, capture, refund and webhook handling for orders."""
from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Mapping, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    UpstreamPaymentError,
)
from marketplace.domain.pricing import to_money
from marketplace.domain.statuses import NotificationType, OrderStatus, PaymentStatus, can_transition_payment
from marketplace.infra.database.models.base import utcnow
from marketplace.infra.database.models.order import Order
from marketplace.infra.database.repositories import OrderRepository
from marketplace.integrations.paypal import (
    CaptureResult,
    CreateOrderResult,
    OrderDetailsResult,
    PayPalClient,
    PayPalResult,
    RefundResult,
)
from marketplace.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

PAYMENT_COMPLETED_NOTE = "Payment completed via PayPal"
DEFAULT_REFUND_REASON = "Refund requested"

_UNPAID = frozenset({PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value})
_CHECKOUT_OPEN = _UNPAID | {PaymentStatus.FAILED.value}


def _raise_on_failure(result: PayPalResult, message: str) -> None:
    if not result.success:
        raise UpstreamPaymentError(
            message,
            details={"provider_error": result.error} if result.error else None,
        )


class PaymentService:
    def __init__(
        self,
        session: AsyncSession,
        gateway: PayPalClient,
        *,
        notifier: Optional[NotificationService] = None,
    ) -> None:
        self._repo = OrderRepository(session)
        self._gateway = gateway
        self._notifier = notifier or NotificationService(session)

    async def _customer_order(self, order_number: str, user_id: UUID) -> Order:
        order = await self._repo.get_for_customer(order_number, user_id)
        if order is None:
            raise NotFoundError("Order not found", details={"order_number": order_number})
        return order

    # ── Checkout ──────────────────────────────────────────────────

    async def create_checkout(
        self,
        order_number: str,
        user_id: UUID,
        *,
        amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
        description: Optional[str] = None,
    ) -> CreateOrderResult:
        """Open a provider order for an existing order and move its payment to processing."""
        order = await self._customer_order(order_number, user_id)
        if order.payment_status not in _CHECKOUT_OPEN:
            raise ConflictError("Order is already paid", details={"payment_status": order.payment_status})

        charge = to_money(amount) if amount is not None else order.pricing_total
        # The exact tax is only known when the full order total is charged.
        tax = order.pricing_tax if charge == order.pricing_total else None
        result = await self._gateway.create_order(
            amount=charge,
            currency=currency or order.pricing_currency,
            reference_id=order.order_number,
            description=description or f"{order.service_name} - {order.service_category}",
            tax=tax,
        )
        _raise_on_failure(result, "Failed to create PayPal order")

        if order.payment_status != PaymentStatus.PROCESSING.value:
            order.set_payment_status(PaymentStatus.PROCESSING)
        order.payment_transaction_id = result.order_id
        await self._repo.save(order)
        logger.info(
            "PaymentService: PayPal order %s opened for %s",
            result.order_id, order.order_number,
            extra={"order_number": order.order_number},
        )
        return result

    async def create_direct_order(
        self,
        user_id: UUID,
        *,
        amount: Decimal,
        currency: str = "USD",
        description: Optional[str] = None,
    ) -> CreateOrderResult:
        """Provider order with no marketplace order behind it."""
        result = await self._gateway.create_order(
            amount=amount,
            currency=currency,
            reference_id=f"temp-{int(time.time() * 1000)}-{user_id}",
            description=description or "Digital Service Payment",
        )
        _raise_on_failure(result, "Failed to create PayPal order")
        return result

    async def capture_direct_order(self, paypal_order_id: str) -> CaptureResult:
        result = await self._gateway.capture_order(paypal_order_id)
        _raise_on_failure(result, "Failed to capture PayPal payment")
        return result

    async def get_provider_order(self, paypal_order_id: str) -> OrderDetailsResult:
        result = await self._gateway.get_order_details(paypal_order_id)
        if not result.success:
            raise NotFoundError(
                "PayPal order not found",
                details={"provider_error": result.error} if result.error else None,
            )
        return result

    # ── Capture ───────────────────────────────────────────────────

    async def capture(self, order_number: str, paypal_order_id: str, user_id: UUID) -> tuple[CaptureResult, Order]:
        """Capture funds and confirm the order.

        The order is moved to ``confirmed`` whatever its prior status, with a
        dedicated history entry.
        """
        order = await self._customer_order(order_number, user_id)
        if order.is_paid:
            raise ConflictError("Payment already captured", details={"order_number": order_number})
        if order.payment_transaction_id != paypal_order_id:
            raise ConflictError("PayPal order ID mismatch", details={"order_number": order_number})
        if not can_transition_payment(order.payment_status, PaymentStatus.COMPLETED):
            raise ConflictError(
                "Payment is not awaiting capture",
                details={"order_number": order_number, "payment_status": order.payment_status},
            )

        result = await self._gateway.capture_order(paypal_order_id)
        _raise_on_failure(result, "Failed to capture PayPal payment")

        order.set_payment_status(PaymentStatus.COMPLETED)
        order.payment_transaction_id = result.capture_id
        order.payment_paid_at = utcnow()
        order.add_status_history(OrderStatus.CONFIRMED, PAYMENT_COMPLETED_NOTE, None)
        await self._repo.save(order)
        logger.info(
            "PaymentService: captured %s for order %s",
            result.capture_id, order.order_number,
            extra={"order_number": order.order_number},
        )
        await self._notifier.notify(order.id, NotificationType.PAYMENT_PROCESSED)
        return result, order

    # ── Refund ────────────────────────────────────────────────────

    async def refund(
        self,
        order_number: str,
        *,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
        admin_id: Optional[str] = None,
    ) -> RefundResult:
        order = await self._repo.get_by_order_number(order_number)
        if order is None:
            raise NotFoundError("Order not found", details={"order_number": order_number})
        if not order.is_paid:
            raise ConflictError("Order is not paid yet", details={"payment_status": order.payment_status})

        refund_amount = to_money(amount) if amount is not None else order.pricing_total
        note = reason or DEFAULT_REFUND_REASON
        result = await self._gateway.refund_payment(
            order.payment_transaction_id,
            amount=refund_amount,
            currency=order.pricing_currency,
            note=note,
        )
        _raise_on_failure(result, "Failed to process refund")

        order.set_payment_status(PaymentStatus.REFUNDED)
        order.payment_refunded_at = utcnow()
        order.payment_refund_amount = refund_amount
        order.add_status_history(OrderStatus.CANCELLED, f"Refunded: {note}", admin_id)
        await self._repo.save(order)
        logger.info(
            "PaymentService: refunded %s on order %s",
            refund_amount, order.order_number,
            extra={"order_number": order.order_number},
        )
        await self._notifier.notify(order.id, NotificationType.ORDER_CANCELLED, {"reason": note})
        return result

    # ── Webhooks ──────────────────────────────────────────────────

    async def handle_webhook(self, headers: Mapping[str, str], event: Mapping[str, Any]) -> None:
        if not await self._gateway.verify_webhook_signature(headers, event):
            raise UnauthorizedError("Invalid webhook signature")

        event_type = event.get("event_type")
        resource = event.get("resource") or {}
        if event_type == "PAYMENT.CAPTURE.DENIED":
            await self._mark_denied(resource)
        elif event_type == "PAYMENT.CAPTURE.COMPLETED":
            logger.info("PaymentService: webhook capture completed (%s)", resource.get("id"))
        else:
            logger.info("PaymentService: unhandled webhook event %s", event_type)

    async def _mark_denied(self, resource: Mapping[str, Any]) -> None:
        related = ((resource.get("supplementary_data") or {}).get("related_ids") or {}).get("order_id")
        order = None
        for candidate in (related, resource.get("id")):
            if candidate:
                order = await self._repo.get_by_transaction_id(candidate)
                if order is not None:
                    break
        if order is None:
            logger.warning("PaymentService: denied capture %s matches no order", resource.get("id"))
            return
        if order.payment_status not in _UNPAID:
            logger.info(
                "PaymentService: ignoring denial for order %s in payment status %s",
                order.order_number, order.payment_status,
            )
            return
        order.set_payment_status(PaymentStatus.FAILED)
        await self._repo.save(order)
        logger.warning(
            "PaymentService: payment denied for order %s",
            order.order_number,
            extra={"order_number": order.order_number},
        )
