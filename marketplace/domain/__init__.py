"""Pure order-lifecycle rules: statuses, pricing, numbering, delivery and notification templates."""
from marketplace.domain.delivery import DELIVERY_OFFSET_DAYS, delivery_offset_days, expected_delivery
from marketplace.domain.order_numbers import OrderNumberGenerator, generate_order_number, is_order_number
from marketplace.domain.pricing import PriceQuote, calculate_pricing, timeline_adjustment, to_money
from marketplace.domain.statuses import (
    AttachmentCategory,
    AuthorKind,
    CUSTOMER_CANCELLABLE,
    NoteType,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RevisionStatus,
    Timeline,
    can_transition_payment,
    value_of,
)

__all__ = [
    "AttachmentCategory",
    "AuthorKind",
    "CUSTOMER_CANCELLABLE",
    "DELIVERY_OFFSET_DAYS",
    "NoteType",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
    "OrderNumberGenerator",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "PriceQuote",
    "RevisionStatus",
    "Timeline",
    "calculate_pricing",
    "can_transition_payment",
    "delivery_offset_days",
    "expected_delivery",
    "generate_order_number",
    "is_order_number",
    "timeline_adjustment",
    "to_money",
    "value_of",
]
