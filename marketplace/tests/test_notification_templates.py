"""Tests for notification templates, rendering and the transition -> event map."""
from __future__ import annotations

import unittest
from decimal import Decimal

from marketplace.core.exceptions import ConfigurationError, UnknownEventTypeError
from marketplace.domain.notifications import (
    DEFAULT_TEMPLATES,
    NotificationTemplate,
    TemplateRegistry,
    build_default_registry,
    event_for_transition,
    render,
)
from marketplace.domain.statuses import NotificationPriority, NotificationType, OrderStatus


class TestRender(unittest.TestCase):
    def test_substitutes_known_values(self) -> None:
        self.assertEqual(
            render("Your {serviceName} order {orderNumber}", {"serviceName": "Logo", "orderNumber": "ORD-1"}),
            "Your Logo order ORD-1",
        )

    def test_missing_value_stays_verbatim(self) -> None:
        self.assertEqual(render("Hi {customerName}", {}), "Hi {customerName}")
        self.assertEqual(render("Hi {customerName}", {"customerName": None}), "Hi {customerName}")
        self.assertEqual(render("Hi {customerName}", {"customerName": ""}), "Hi {customerName}")

    def test_amount_has_two_decimals(self) -> None:
        self.assertEqual(render("${amount}", {"amount": Decimal("165")}), "$165.00")
        self.assertEqual(render("${amount}", {"amount": 12.5}), "$12.50")

    def test_text_without_placeholders_is_unchanged(self) -> None:
        self.assertEqual(render("No braces here", {"serviceName": "x"}), "No braces here")


class TestTemplateRegistry(unittest.TestCase):
    def test_default_registry_covers_every_type(self) -> None:
        self.assertEqual(len(DEFAULT_TEMPLATES), len(NotificationType))
        for kind in NotificationType:
            self.assertIn(kind, DEFAULT_TEMPLATES)
            self.assertIn(kind.value, DEFAULT_TEMPLATES)

    def test_priorities_follow_event_importance(self) -> None:
        self.assertEqual(DEFAULT_TEMPLATES.get("order_confirmed").priority, NotificationPriority.HIGH)
        self.assertEqual(DEFAULT_TEMPLATES.get("payment_processed").priority, NotificationPriority.LOW)
        self.assertEqual(DEFAULT_TEMPLATES.get("order_created").priority, NotificationPriority.MEDIUM)

    def test_payment_template_renders_amount(self) -> None:
        title, message = DEFAULT_TEMPLATES.get(NotificationType.PAYMENT_PROCESSED).render(
            {"serviceName": "Website Design", "amount": Decimal("165.00")}
        )
        self.assertEqual(title, "Payment Confirmed")
        self.assertIn("Website Design", message)
        self.assertTrue(message.endswith("Order total: $165.00"))

    def test_unknown_type_raises(self) -> None:
        with self.assertRaises(UnknownEventTypeError):
            DEFAULT_TEMPLATES.get("order_exploded")

    def test_unknown_placeholder_rejected_at_registration(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            NotificationTemplate(NotificationType.ORDER_CREATED, "Hi", "Your {serviceNmae} order")
        self.assertEqual(ctx.exception.details["placeholders"], ["serviceNmae"])

    def test_register_replaces_existing_type(self) -> None:
        registry = build_default_registry()
        registry.add(NotificationType.ORDER_CREATED, "Thanks!", "Order {orderNumber} received.")
        title, message = registry.get("order_created").render({"orderNumber": "ORD-9"})
        self.assertEqual(title, "Thanks!")
        self.assertEqual(message, "Order ORD-9 received.")
        self.assertEqual(len(registry), len(NotificationType))
        self.assertEqual(DEFAULT_TEMPLATES.get("order_created").title, "Order Received!")

    def test_register_rejects_non_templates(self) -> None:
        with self.assertRaises(ConfigurationError):
            TemplateRegistry().register({"type": "order_created"})  # type: ignore[arg-type]

    def test_contains_ignores_other_objects(self) -> None:
        self.assertNotIn(42, DEFAULT_TEMPLATES)


class TestEventForTransition(unittest.TestCase):
    def test_mapped_transitions(self) -> None:
        cases = {
            ("pending", "confirmed"): NotificationType.ORDER_CONFIRMED,
            ("confirmed", "in_progress"): NotificationType.ORDER_STARTED,
            ("in_progress", "under_review"): NotificationType.ORDER_UNDER_REVIEW,
            ("under_review", "revision_requested"): NotificationType.ORDER_REVISION_REQUESTED,
            ("revision_requested", "in_progress"): NotificationType.ORDER_STARTED,
            ("under_review", "completed"): NotificationType.ORDER_COMPLETED,
        }
        for (src, dst), expected in cases.items():
            self.assertEqual(event_for_transition(src, dst), expected, (src, dst))

    def test_any_status_to_cancelled(self) -> None:
        for src in ("pending", "confirmed", "in_progress", "under_review", "completed"):
            self.assertEqual(event_for_transition(src, OrderStatus.CANCELLED), NotificationType.ORDER_CANCELLED)

    def test_unmapped_transition_has_no_event(self) -> None:
        self.assertIsNone(event_for_transition("pending", "completed"))
        self.assertIsNone(event_for_transition("completed", "in_progress"))

    def test_same_status_has_no_event(self) -> None:
        self.assertIsNone(event_for_transition("cancelled", "cancelled"))
        self.assertIsNone(event_for_transition(OrderStatus.PENDING, "pending"))


if __name__ == "__main__":
    unittest.main()
