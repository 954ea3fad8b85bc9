"""Tests for the Order aggregate: history, delivery dates, feedback and payment status."""
from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from marketplace.core.exceptions import ConflictError, ValidationError
from marketplace.domain.pricing import calculate_pricing
from marketplace.domain.statuses import OrderStatus, PaymentStatus
from marketplace.infra.database.models.order import INITIAL_HISTORY_NOTE, Order

JAN_1 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _product(**kwargs):
    defaults = {
        "id": uuid4(),
        "name": "Website Design",
        "subtitle": "Responsive",
        "category": "web",
        "features": ["3 pages", "SEO"],
        "image": None,
        "price": Decimal("150"),
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _order(timeline: str = "standard", **product_kwargs) -> Order:
    product = _product(**product_kwargs)
    return Order.create(
        order_number="ORD-12345678ABCD",
        customer_user_id=uuid4(),
        customer={
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
            "phone": "+1 555 0100",
        },
        product=product,
        project_description="A portfolio site",
        timeline=timeline,
        quote=calculate_pricing(product.price, timeline),
    )


class TestOrderCreate(unittest.TestCase):
    def test_snapshot_and_pricing(self) -> None:
        order = _order()
        self.assertEqual(order.service_name, "Website Design")
        self.assertEqual(order.service_features, ["3 pages", "SEO"])
        self.assertEqual(order.customer_name, "Ada Lovelace")
        self.assertEqual(order.pricing_subtotal, Decimal("150.00"))
        self.assertEqual(order.pricing_tax, Decimal("15.00"))
        self.assertEqual(order.pricing_total, Decimal("165.00"))
        self.assertEqual(order.payment_status, PaymentStatus.PENDING.value)

    def test_starts_pending_with_one_history_entry(self) -> None:
        order = _order()
        self.assertEqual(order.status, "pending")
        self.assertEqual(len(order.status_history), 1)
        first = order.status_history[0]
        self.assertEqual(first.status, "pending")
        self.assertEqual(first.note, INITIAL_HISTORY_NOTE)
        self.assertEqual(first.sequence, 0)

    def test_features_are_copied(self) -> None:
        features = ["a"]
        order = _order(features=features)
        features.append("b")
        self.assertEqual(order.service_features, ["a"])


class TestStatusHistory(unittest.TestCase):
    def test_status_always_matches_last_history_entry(self) -> None:
        order = _order()
        for status in ("confirmed", OrderStatus.IN_PROGRESS, "under_review", "completed"):
            order.add_status_history(status, None, "admin")
            self.assertEqual(order.status, order.status_history[-1].status)
        self.assertEqual([h.sequence for h in order.status_history], [0, 1, 2, 3, 4])

    def test_history_is_append_only(self) -> None:
        order = _order()
        first = order.status_history[0]
        order.add_status_history("confirmed", "ok", "admin")
        self.assertIs(order.status_history[0], first)
        self.assertEqual(first.status, "pending")

    def test_same_status_still_records_entry(self) -> None:
        order = _order()
        order.add_status_history(order.status, "Order assigned to team member", "admin")
        self.assertEqual(len(order.status_history), 2)
        self.assertEqual(order.status, "pending")

    def test_invalid_status_is_rejected_without_side_effects(self) -> None:
        order = _order()
        with self.assertRaises(ValidationError):
            order.add_status_history("shipped", None, None)
        self.assertEqual(order.status, "pending")
        self.assertEqual(len(order.status_history), 1)


class TestDeliveryDates(unittest.TestCase):
    def test_fast_delivery_is_seven_days_after_start(self) -> None:
        order = _order("fast")
        self.assertTrue(order.start_work(JAN_1))
        self.assertEqual(order.project_start_date, JAN_1)
        self.assertEqual(order.project_expected_delivery_date, datetime(2024, 1, 8, tzinfo=timezone.utc))

    def test_start_work_only_once(self) -> None:
        order = _order("fast")
        order.start_work(JAN_1)
        self.assertFalse(order.start_work(JAN_1 + timedelta(days=5)))
        self.assertEqual(order.project_start_date, JAN_1)
        self.assertEqual(order.project_expected_delivery_date, datetime(2024, 1, 8, tzinfo=timezone.utc))

    def test_calculate_is_idempotent(self) -> None:
        order = _order("flexible")
        order.start_work(JAN_1)
        first = order.calculate_delivery_date()
        self.assertEqual(order.calculate_delivery_date(), first)
        self.assertEqual(first, JAN_1 + timedelta(days=30))

    def test_rush_uses_three_day_offset(self) -> None:
        order = _order("rush")
        order.start_work(JAN_1)
        self.assertEqual(order.project_expected_delivery_date, JAN_1 + timedelta(days=3))

    def test_without_start_falls_back_to_created_at(self) -> None:
        order = _order("standard")
        order.created_at = JAN_1
        self.assertEqual(order.calculate_delivery_date(), JAN_1 + timedelta(days=21))

    def test_actual_delivery_set_once(self) -> None:
        order = _order()
        self.assertTrue(order.set_actual_delivery_date(JAN_1))
        self.assertFalse(order.set_actual_delivery_date(JAN_1 + timedelta(days=1)))
        self.assertEqual(order.project_actual_delivery_date, JAN_1)


class TestFeedback(unittest.TestCase):
    def test_rejected_unless_completed(self) -> None:
        order = _order()
        order.add_status_history("under_review")
        with self.assertRaises(ConflictError):
            order.submit_feedback(5, "great")
        self.assertIsNone(order.feedback_rating)

    def test_accepted_when_completed(self) -> None:
        order = _order()
        order.add_status_history("completed")
        order.submit_feedback(4, "nice work")
        self.assertEqual(order.feedback_rating, 4)
        self.assertEqual(order.feedback_comment, "nice work")
        self.assertIsNotNone(order.feedback_submitted_at)

    def test_rating_out_of_range(self) -> None:
        order = _order()
        order.add_status_history("completed")
        for rating in (0, 6):
            with self.assertRaises(ValidationError):
                order.submit_feedback(rating)


class TestPaymentStatus(unittest.TestCase):
    def test_forward_path_to_refund(self) -> None:
        order = _order()
        for target in (PaymentStatus.PROCESSING, PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
            order.set_payment_status(target)
        self.assertEqual(order.payment_status, "refunded")

    def test_completed_cannot_go_back(self) -> None:
        order = _order()
        order.set_payment_status("processing")
        order.set_payment_status("completed")
        self.assertTrue(order.is_paid)
        with self.assertRaises(ConflictError):
            order.set_payment_status("pending")
        with self.assertRaises(ConflictError):
            order.set_payment_status("failed")

    def test_failed_may_retry(self) -> None:
        order = _order()
        order.set_payment_status("failed")
        order.set_payment_status("processing")
        self.assertEqual(order.payment_status, "processing")

    def test_pending_cannot_jump_to_refunded(self) -> None:
        order = _order()
        with self.assertRaises(ConflictError):
            order.set_payment_status("refunded")
        self.assertEqual(order.payment_status, "pending")


class TestChildCollections(unittest.TestCase):
    def test_note_attachment_revision(self) -> None:
        order = _order()
        note = order.add_note("Hello", "u1", "User", "client")
        self.assertEqual(note.author_kind, "User")
        self.assertEqual(note.type, "client")
        order.add_attachment(
            filename="brief-1.pdf", original_name="brief.pdf", file_type="application/pdf",
            file_size=1024, uploaded_by="u1", uploader_kind="User",
        )
        self.assertEqual(order.attachments[0].category, "requirement")
        revision = order.add_revision("Bigger logo")
        self.assertEqual(revision.status, "pending")
        self.assertEqual(len(order.revisions), 1)


if __name__ == "__main__":
    unittest.main()
