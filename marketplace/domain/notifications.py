"""Notification templates and the status-transition -> event map.

Templates reference a closed set of placeholders. Registering a template
that uses any other name raises ConfigurationError, so a typo cannot reach
a customer's inbox as literal ``{serviceNmae}``. At render time a known
placeholder without a value is left verbatim.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from marketplace.core.exceptions import ConfigurationError, UnknownEventTypeError
from marketplace.domain.statuses import (
    NotificationPriority,
    NotificationType,
    OrderStatus,
    value_of,
)

PLACEHOLDER = re.compile(r"\{([a-zA-Z_][a-zA-Z0-9_]*)\}")

KNOWN_PLACEHOLDERS: FrozenSet[str] = frozenset(
    {
        "serviceName",
        "orderNumber",
        "amount",
        "statusFrom",
        "statusTo",
        "assignedTo",
        "customerName",
        "reason",
    }
)

DEFAULT_SERVICE_NAME = "your service"


def placeholders_in(text: str) -> FrozenSet[str]:
    return frozenset(PLACEHOLDER.findall(text))


def _format_value(key: str, value: Any) -> str:
    if key == "amount":
        try:
            return f"{Decimal(str(value)):.2f}"
        except (ArithmeticError, ValueError):
            return str(value)
    return str(value)


def render(text: str, values: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders. Missing or None values stay verbatim."""

    def repl(match: re.Match[str]) -> str:
        key = match.group(1)
        value = values.get(key)
        if value is None or value == "":
            return match.group(0)
        return _format_value(key, value)

    return PLACEHOLDER.sub(repl, text)


@dataclass(frozen=True)
class NotificationTemplate:
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM

    def __post_init__(self) -> None:
        unknown = (placeholders_in(self.title) | placeholders_in(self.message)) - KNOWN_PLACEHOLDERS
        if unknown:
            raise ConfigurationError(
                f"Template {self.type.value} references unknown placeholders",
                details={"placeholders": sorted(unknown)},
            )

    def render(self, values: Mapping[str, Any]) -> Tuple[str, str]:
        return render(self.title, values), render(self.message, values)


class TemplateRegistry:
    """Maps each event type to exactly one template."""

    def __init__(self) -> None:
        self._templates: Dict[str, NotificationTemplate] = {}

    def register(self, template: NotificationTemplate) -> NotificationTemplate:
        if not isinstance(template, NotificationTemplate):
            raise ConfigurationError("Only NotificationTemplate instances can be registered")
        self._templates[template.type.value] = template
        return template

    def add(
        self,
        type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> NotificationTemplate:
        return self.register(NotificationTemplate(type, title, message, priority))

    def get(self, event_type: Union[str, NotificationType]) -> NotificationTemplate:
        template = self._templates.get(value_of(event_type))
        if template is None:
            raise UnknownEventTypeError(
                f"Unknown notification type: {value_of(event_type)}",
                details={"type": value_of(event_type)},
            )
        return template

    def __contains__(self, event_type: object) -> bool:
        return isinstance(event_type, (str, NotificationType)) and value_of(event_type) in self._templates

    def __len__(self) -> int:
        return len(self._templates)


def build_default_registry() -> TemplateRegistry:
    registry = TemplateRegistry()
    T, P = NotificationType, NotificationPriority
    registry.add(
        T.ORDER_CREATED, "Order Received!",
        "Thank you for your order! We have received your request for {serviceName} "
        "and our team will review it shortly.",
        P.MEDIUM,
    )
    registry.add(
        T.ORDER_CONFIRMED, "Order Confirmed",
        "Great news! Your {serviceName} order has been confirmed and approved. "
        "Our team will start working on it soon.",
        P.HIGH,
    )
    registry.add(
        T.ORDER_ASSIGNED, "Team Assigned",
        "Your {serviceName} project has been assigned to our expert team. Work will begin shortly!",
        P.MEDIUM,
    )
    registry.add(
        T.ORDER_STARTED, "Work Started",
        "Exciting news! We have started working on your {serviceName} project. "
        "You can track progress in your dashboard.",
        P.HIGH,
    )
    registry.add(
        T.ORDER_UNDER_REVIEW, "Ready for Review",
        "Your {serviceName} project is complete and ready for your review. "
        "Please check your dashboard to view the deliverables.",
        P.HIGH,
    )
    registry.add(
        T.ORDER_REVISION_REQUESTED, "Revision Requested",
        "We have received your feedback for the {serviceName} project. "
        "Our team is working on the requested revisions.",
        P.MEDIUM,
    )
    registry.add(
        T.ORDER_COMPLETED, "Project Completed!",
        "Congratulations! Your {serviceName} project has been completed successfully. "
        "Thank you for choosing our services!",
        P.HIGH,
    )
    registry.add(
        T.ORDER_CANCELLED, "Order Cancelled",
        "Your {serviceName} order has been cancelled as requested. "
        "If you have any questions, please contact our support team.",
        P.MEDIUM,
    )
    registry.add(
        T.PAYMENT_PROCESSED, "Payment Confirmed",
        "Your payment for {serviceName} has been processed successfully. Order total: ${amount}",
        P.LOW,
    )
    registry.add(
        T.MESSAGE_RECEIVED, "New Message",
        "You have a new message about your {serviceName} order {orderNumber}.",
        P.MEDIUM,
    )
    registry.add(
        T.FEEDBACK_REQUESTED, "Share Your Experience",
        "How was your experience with our {serviceName}? We would love to hear your feedback and rating.",
        P.LOW,
    )
    return registry


DEFAULT_TEMPLATES = build_default_registry()


# Transitions not listed here (and not into cancelled) produce no notification.
STATUS_CHANGE_EVENTS: Dict[Tuple[str, str], NotificationType] = {
    (OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value): NotificationType.ORDER_CONFIRMED,
    (OrderStatus.CONFIRMED.value, OrderStatus.IN_PROGRESS.value): NotificationType.ORDER_STARTED,
    (OrderStatus.IN_PROGRESS.value, OrderStatus.UNDER_REVIEW.value): NotificationType.ORDER_UNDER_REVIEW,
    (OrderStatus.UNDER_REVIEW.value, OrderStatus.REVISION_REQUESTED.value): NotificationType.ORDER_REVISION_REQUESTED,
    (OrderStatus.REVISION_REQUESTED.value, OrderStatus.IN_PROGRESS.value): NotificationType.ORDER_STARTED,
    (OrderStatus.UNDER_REVIEW.value, OrderStatus.COMPLETED.value): NotificationType.ORDER_COMPLETED,
}


def event_for_transition(
    status_from: Union[str, OrderStatus],
    status_to: Union[str, OrderStatus],
) -> Optional[NotificationType]:
    src, dst = value_of(status_from), value_of(status_to)
    if src == dst:
        return None
    if dst == OrderStatus.CANCELLED.value:
        return NotificationType.ORDER_CANCELLED
    return STATUS_CHANGE_EVENTS.get((src, dst))
