"""Enumerations and transition tables for the order lifecycle.

The literal values are persisted and read verbatim by the frontend; never
rename them.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Union


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    UNDER_REVIEW = "under_review"
    REVISION_REQUESTED = "revision_requested"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    PAYPAL = "paypal"
    STRIPE = "stripe"
    BANK_TRANSFER = "bank_transfer"


class Timeline(str, Enum):
    RUSH = "rush"
    FAST = "fast"
    STANDARD = "standard"
    FLEXIBLE = "flexible"


class NoteType(str, Enum):
    INTERNAL = "internal"
    CLIENT = "client"
    SYSTEM = "system"


class AuthorKind(str, Enum):
    """Who wrote a note or uploaded an attachment."""
    USER = "User"
    ADMIN = "Admin"


class AttachmentCategory(str, Enum):
    REQUIREMENT = "requirement"
    DELIVERABLE = "deliverable"
    REVISION = "revision"
    FINAL = "final"


class RevisionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class NotificationType(str, Enum):
    ORDER_CREATED = "order_created"
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_ASSIGNED = "order_assigned"
    ORDER_STARTED = "order_started"
    ORDER_UNDER_REVIEW = "order_under_review"
    ORDER_REVISION_REQUESTED = "order_revision_requested"
    ORDER_COMPLETED = "order_completed"
    ORDER_CANCELLED = "order_cancelled"
    PAYMENT_PROCESSED = "payment_processed"
    MESSAGE_RECEIVED = "message_received"
    FEEDBACK_REQUESTED = "feedback_requested"


class NotificationStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


ORDER_STATUS_VALUES: FrozenSet[str] = frozenset(s.value for s in OrderStatus)

CUSTOMER_CANCELLABLE: FrozenSet[str] = frozenset(
    {OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value}
)
"""Statuses from which the customer may cancel. Admins are not restricted."""

FEEDBACK_ALLOWED_STATUS = OrderStatus.COMPLETED.value
REVISION_ALLOWED_STATUS = OrderStatus.UNDER_REVIEW.value

PAYMENT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    PaymentStatus.PENDING.value: frozenset({PaymentStatus.PROCESSING.value, PaymentStatus.FAILED.value}),
    PaymentStatus.PROCESSING.value: frozenset({PaymentStatus.COMPLETED.value, PaymentStatus.FAILED.value}),
    PaymentStatus.COMPLETED.value: frozenset({PaymentStatus.REFUNDED.value}),
    # A new provider order may be opened after a failed attempt.
    PaymentStatus.FAILED.value: frozenset({PaymentStatus.PROCESSING.value}),
    PaymentStatus.REFUNDED.value: frozenset(),
}


def value_of(item: Union[str, Enum]) -> str:
    """Plain string value of an enum member (or the string itself)."""
    return item.value if isinstance(item, Enum) else str(item)


def can_transition_payment(current: Union[str, PaymentStatus], target: Union[str, PaymentStatus]) -> bool:
    """Forward-only payment status changes, plus completed -> refunded and a retry after failure."""
    return value_of(target) in PAYMENT_TRANSITIONS.get(value_of(current), frozenset())
