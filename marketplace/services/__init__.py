"""Service layer: orders, payments and notifications."""
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_service import OrderService
from marketplace.services.payment_service import PaymentService

__all__ = [
    "NotificationService",
    "OrderService",
    "PaymentService",
]
