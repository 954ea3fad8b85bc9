"""Tests for the HTTP layer: routers, identity headers and error mapping.

Services are replaced with mocks; no database is involved.
"""
from __future__ import annotations

import unittest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm.exc import StaleDataError

from marketplace.api.dependencies import get_session
from marketplace.api.errors import register_exception_handlers
from marketplace.config import AppConfig
from marketplace.core.exceptions import ConflictError, ForbiddenError, NotFoundError, UpstreamPaymentError
from marketplace.domain.pricing import calculate_pricing
from marketplace.infra.database.models.notification import Notification
from marketplace.infra.database.models.order import Order
from marketplace.integrations.paypal import CaptureResult, CreateOrderResult, RefundResult

USER_ID = uuid4()
USER_HEADERS = {"X-User-ID": str(USER_ID)}
ADMIN_KEY = "s3cret"
ADMIN_HEADERS = {"X-Api-Key": ADMIN_KEY, "X-Admin-ID": "admin-7"}


# ─── helpers ─────────────────────────────────────────────────────────────────

async def _fake_session():
    yield MagicMock()


def _make_test_app(*, production: bool = False, paypal=True) -> FastAPI:
    """Minimal app with the three routers, error handlers and a mocked app.state."""
    from marketplace.api.routers import notifications, orders, payments

    app = FastAPI()
    register_exception_handlers(app, production=production)
    app.include_router(orders.router, prefix="/api/v1")
    app.include_router(payments.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.dependency_overrides[get_session] = _fake_session
    app.state.config = AppConfig(
        environment="production" if production else "development",
        admin_api_key=ADMIN_KEY,
    )
    app.state.paypal = MagicMock() if paypal else None
    app.state.email_client = None
    return app


def _order(**overrides) -> Order:
    product = SimpleNamespace(id=uuid4(), name="Website Design", category="web", price=Decimal("150"))
    order = Order.create(
        order_number="ORD-12345678ABCD",
        customer_user_id=USER_ID,
        customer={"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com", "phone": "1"},
        product=product,
        project_description="Portfolio",
        timeline="standard",
        quote=calculate_pricing(product.price, "standard"),
    )
    order.id = uuid4()
    for key, value in overrides.items():
        setattr(order, key, value)
    return order


def _notification(**overrides) -> Notification:
    values = dict(
        id=uuid4(), user_id=USER_ID, order_id=None, type="order_created", title="Order Received!",
        message="Thanks", status="unread", priority="medium", data={}, channel_in_app=True,
        channel_email=True, channel_sms=False, email_sent=False,
    )
    values.update(overrides)
    return Notification(**values)


CREATE_BODY = {
    "serviceId": str(uuid4()),
    "customerInfo": {"firstName": "Ada", "lastName": "Lovelace", "email": "ADA@Example.com", "phone": "+1 555"},
    "projectDetails": {"projectDescription": "Portfolio", "timeline": "standard"},
    "pricing": {"subtotal": 1, "tax": 1, "total": 1},
}


# ─── orders ──────────────────────────────────────────────────────────────────

class TestOrdersRouter(unittest.TestCase):
    def setUp(self) -> None:
        self.app = _make_test_app()
        self.svc = MagicMock()
        patcher = patch("marketplace.api.routers.orders.OrderService", return_value=self.svc)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(self.app)

    def test_create_requires_user_header(self) -> None:
        resp = self.client.post("/api/v1/orders", json=CREATE_BODY)
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "UNAUTHORIZED")

    def test_create_rejects_non_uuid_user(self) -> None:
        resp = self.client.post("/api/v1/orders", json=CREATE_BODY, headers={"X-User-ID": "bob"})
        self.assertEqual(resp.status_code, 401)

    def test_create_missing_fields_is_400(self) -> None:
        body = {k: v for k, v in CREATE_BODY.items() if k != "customerInfo"}
        resp = self.client.post("/api/v1/orders", json=body, headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 400)
        payload = resp.json()
        self.assertEqual(payload["code"], "VALIDATION_ERROR")
        self.assertTrue(any(e["field"] == "customerInfo" for e in payload["details"]["errors"]))

    def test_create_returns_camel_case_order(self) -> None:
        self.svc.create_order = AsyncMock(return_value=_order())

        resp = self.client.post("/api/v1/orders", json=CREATE_BODY, headers=USER_HEADERS)

        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["orderNumber"], "ORD-12345678ABCD")
        self.assertEqual(body["order"]["pricing"], {
            "subtotal": 150.0, "tax": 15.0, "total": 165.0, "currency": "USD", "timelineAdjustment": 0.0,
        })
        self.assertEqual(body["order"]["statusHistory"][0]["status"], "pending")
        self.assertEqual(body["order"]["payment"]["status"], "pending")
        kwargs = self.svc.create_order.await_args.kwargs
        self.assertEqual(kwargs["customer"]["email"], "ada@example.com")
        self.assertEqual(self.svc.create_order.await_args.args[0], USER_ID)

    def test_unknown_service_is_404(self) -> None:
        self.svc.create_order = AsyncMock(side_effect=NotFoundError("Service not found"))
        resp = self.client.post("/api/v1/orders", json=CREATE_BODY, headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"], "Service not found")

    def test_my_orders_pagination(self) -> None:
        self.svc.list_customer_orders = AsyncMock(return_value=([_order()], 21))
        resp = self.client.get("/api/v1/orders/my-orders?page=2&limit=10", headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["pagination"], {"current": 2, "pages": 3, "total": 21, "limit": None})

    def test_cancel_conflict_is_400(self) -> None:
        self.svc.cancel_order = AsyncMock(
            side_effect=ConflictError("Order cannot be cancelled at this stage", details={"status": "in_progress"}),
        )
        resp = self.client.put("/api/v1/orders/ORD-12345678ABCD/cancel", headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {
            "detail": "Order cannot be cancelled at this stage",
            "code": "CONFLICT",
            "details": {"status": "in_progress"},
        })

    def test_cancel_with_reason(self) -> None:
        self.svc.cancel_order = AsyncMock(return_value=_order(status="cancelled"))
        resp = self.client.put(
            "/api/v1/orders/ORD-12345678ABCD/cancel", json={"reason": "Too slow"}, headers=USER_HEADERS,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "cancelled")
        self.svc.cancel_order.assert_awaited_once_with("ORD-12345678ABCD", USER_ID, "Too slow")

    def test_feedback_rating_validated(self) -> None:
        resp = self.client.post(
            "/api/v1/orders/ORD-12345678ABCD/feedback", json={"rating": 9}, headers=USER_HEADERS,
        )
        self.assertEqual(resp.status_code, 400)

    def test_stale_write_is_conflict(self) -> None:
        self.svc.add_customer_note = AsyncMock(side_effect=StaleDataError("version mismatch"))
        resp = self.client.post(
            "/api/v1/orders/ORD-12345678ABCD/notes", json={"message": "hi"}, headers=USER_HEADERS,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "CONFLICT")

    def test_admin_requires_api_key(self) -> None:
        resp = self.client.get("/api/v1/orders/admin/all")
        self.assertEqual(resp.status_code, 401)
        resp = self.client.get("/api/v1/orders/admin/all", headers={"X-Api-Key": "wrong"})
        self.assertEqual(resp.status_code, 401)

    def test_admin_list_with_counts(self) -> None:
        self.svc.list_admin = AsyncMock(return_value=([_order()], 1, {"pending": 1}))
        resp = self.client.get(
            "/api/v1/orders/admin/all?sortBy=total&sortOrder=asc&assignedTo=designer-7", headers=ADMIN_HEADERS,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["statusCounts"], {"pending": 1})
        kwargs = self.svc.list_admin.await_args.kwargs
        self.assertEqual((kwargs["sort_by"], kwargs["sort_order"], kwargs["assigned_to"]), ("total", "asc", "designer-7"))

    def test_admin_status_update_records_admin_id(self) -> None:
        self.svc.update_status = AsyncMock(return_value=_order(status="confirmed"))
        resp = self.client.put(
            "/api/v1/orders/admin/ORD-12345678ABCD/status",
            json={"status": "confirmed", "note": "ok"}, headers=ADMIN_HEADERS,
        )
        self.assertEqual(resp.status_code, 200)
        self.svc.update_status.assert_awaited_once_with(
            "ORD-12345678ABCD", "confirmed", note="ok", admin_id="admin-7",
        )

    def test_test_notification_passes_environment(self) -> None:
        self.svc.send_test_notification = AsyncMock(return_value=_notification(type="order_confirmed"))
        resp = self.client.post(
            "/api/v1/orders/test-notification/ORD-12345678ABCD", json={"type": "order_confirmed"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["type"], "order_confirmed")
        self.svc.send_test_notification.assert_awaited_once_with(
            "ORD-12345678ABCD", "order_confirmed", production=False,
        )


class TestOrdersRouterProduction(unittest.TestCase):
    def test_test_notification_forbidden(self) -> None:
        app = _make_test_app(production=True)
        svc = MagicMock()
        svc.send_test_notification = AsyncMock(side_effect=ForbiddenError("Test notifications not allowed in production"))
        with patch("marketplace.api.routers.orders.OrderService", return_value=svc):
            resp = TestClient(app).post(
                "/api/v1/orders/test-notification/ORD-12345678ABCD", json={}, headers=ADMIN_HEADERS,
            )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(svc.send_test_notification.await_args.kwargs["production"], True)


# ─── payments ────────────────────────────────────────────────────────────────

class TestPaymentsRouter(unittest.TestCase):
    def setUp(self) -> None:
        self.app = _make_test_app()
        self.svc = MagicMock()
        patcher = patch("marketplace.api.routers.payments.PaymentService", return_value=self.svc)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(self.app)

    def test_create_order(self) -> None:
        self.svc.create_checkout = AsyncMock(return_value=CreateOrderResult(
            success=True, order_id="PP-1", status="CREATED", links=[{"rel": "approve", "href": "https://x"}],
        ))
        resp = self.client.post(
            "/api/v1/payments/paypal/create-order", json={"orderNumber": "ORD-12345678ABCD"}, headers=USER_HEADERS,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {
            "paypalOrderId": "PP-1", "status": "CREATED", "links": [{"rel": "approve", "href": "https://x"}],
        })

    def test_capture_order_includes_summary(self) -> None:
        order = _order(status="confirmed", payment_status="completed")
        self.svc.capture = AsyncMock(return_value=(
            CaptureResult(success=True, capture_id="CAP-1", status="COMPLETED", amount={"value": "165.00"}),
            order,
        ))
        resp = self.client.post(
            "/api/v1/payments/paypal/capture-order",
            json={"paypalOrderId": "PP-1", "orderNumber": "ORD-12345678ABCD"}, headers=USER_HEADERS,
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["captureId"], "CAP-1")
        self.assertEqual(body["order"], {
            "orderNumber": "ORD-12345678ABCD", "status": "confirmed", "paymentStatus": "completed",
        })
        self.svc.capture.assert_awaited_once_with("ORD-12345678ABCD", "PP-1", USER_ID)

    def test_upstream_error_details_shown_outside_production(self) -> None:
        self.svc.create_checkout = AsyncMock(side_effect=UpstreamPaymentError(
            "Failed to create PayPal order", details={"provider_error": "INVALID_REQUEST"},
        ))
        resp = self.client.post(
            "/api/v1/payments/paypal/create-order", json={"orderNumber": "ORD-1"}, headers=USER_HEADERS,
        )
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["details"], {"provider_error": "INVALID_REQUEST"})

    def test_refund_requires_admin(self) -> None:
        resp = self.client.post("/api/v1/payments/paypal/refund", json={"orderNumber": "ORD-1"}, headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 401)

    def test_refund(self) -> None:
        self.svc.refund = AsyncMock(return_value=RefundResult(success=True, refund_id="REF-1", status="COMPLETED"))
        resp = self.client.post(
            "/api/v1/payments/paypal/refund",
            json={"orderNumber": "ORD-1", "amount": 40, "reason": "Partial"}, headers=ADMIN_HEADERS,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["refundId"], "REF-1")
        self.svc.refund.assert_awaited_once_with("ORD-1", amount=Decimal("40"), reason="Partial", admin_id="admin-7")

    def test_refund_unpaid_is_400(self) -> None:
        self.svc.refund = AsyncMock(side_effect=ConflictError("Order is not paid yet"))
        resp = self.client.post("/api/v1/payments/paypal/refund", json={"orderNumber": "ORD-1"}, headers=ADMIN_HEADERS)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Order is not paid yet")

    def test_webhook_is_public(self) -> None:
        self.svc.handle_webhook = AsyncMock(return_value=None)
        event = {"event_type": "PAYMENT.CAPTURE.COMPLETED", "resource": {"id": "CAP-1"}}
        resp = self.client.post("/api/v1/payments/paypal/webhook", json=event)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True})
        self.assertEqual(self.svc.handle_webhook.await_args.args[1], event)

    def test_webhook_rejects_non_object(self) -> None:
        resp = self.client.post("/api/v1/payments/paypal/webhook", json=[1, 2])
        self.assertEqual(resp.status_code, 400)

    def test_paypal_not_configured(self) -> None:
        client = TestClient(_make_test_app(paypal=False))
        resp = client.post(
            "/api/v1/payments/paypal/create-order", json={"orderNumber": "ORD-1"}, headers=USER_HEADERS,
        )
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["code"], "CONFIGURATION_ERROR")


class TestPaymentsRouterProduction(unittest.TestCase):
    def test_upstream_error_details_hidden(self) -> None:
        app = _make_test_app(production=True)
        svc = MagicMock()
        svc.capture_direct_order = AsyncMock(side_effect=UpstreamPaymentError(
            "Failed to capture PayPal payment", details={"provider_error": "INSTRUMENT_DECLINED"},
        ))
        with patch("marketplace.api.routers.payments.PaymentService", return_value=svc):
            resp = TestClient(app).post(
                "/api/v1/payments/paypal/capture-direct-order", json={"paypalOrderId": "PP-1"}, headers=USER_HEADERS,
            )
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"detail": "Failed to capture PayPal payment", "code": "UPSTREAM_PAYMENT_ERROR"})


# ─── notifications ───────────────────────────────────────────────────────────

class TestNotificationsRouter(unittest.TestCase):
    def setUp(self) -> None:
        self.app = _make_test_app()
        self.svc = MagicMock()
        patcher = patch("marketplace.api.routers.notifications.build_notifier", return_value=self.svc)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(self.app)

    def test_list(self) -> None:
        self.svc.list_for_user = AsyncMock(return_value={
            "notifications": [_notification()],
            "total": 1,
            "unread_count": 1,
            "pagination": {"current": 1, "limit": 20, "pages": 1},
        })
        resp = self.client.get("/api/v1/notifications?unreadOnly=true", headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["unreadCount"], 1)
        self.assertEqual(body["notifications"][0]["channels"], {"inApp": True, "email": True, "sms": False})
        self.assertEqual(body["notifications"][0]["emailStatus"]["sent"], False)
        self.assertTrue(self.svc.list_for_user.await_args.kwargs["unread_only"])

    def test_bad_status_filter(self) -> None:
        resp = self.client.get("/api/v1/notifications?status=archived", headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 400)

    def test_unread_count(self) -> None:
        self.svc.unread_count = AsyncMock(return_value=4)
        resp = self.client.get("/api/v1/notifications/unread-count", headers=USER_HEADERS)
        self.assertEqual(resp.json(), {"unreadCount": 4})

    def test_recent(self) -> None:
        self.svc.recent = AsyncMock(return_value=([_notification()], 2))
        resp = self.client.get("/api/v1/notifications/recent", headers=USER_HEADERS)
        self.assertEqual(resp.json()["unreadCount"], 2)
        self.assertEqual(len(resp.json()["notifications"]), 1)

    def test_mark_all_read(self) -> None:
        self.svc.mark_all_as_read = AsyncMock(return_value=3)
        resp = self.client.put("/api/v1/notifications/mark-all-read", headers=USER_HEADERS)
        self.assertEqual(resp.json(), {"modifiedCount": 3})

    def test_mark_read(self) -> None:
        n = _notification(status="read")
        self.svc.mark_as_read = AsyncMock(return_value=n)
        resp = self.client.put(f"/api/v1/notifications/{n.id}/read", headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "read")
        self.svc.mark_as_read.assert_awaited_once_with(n.id, USER_ID)

    def test_delete_missing_is_404(self) -> None:
        self.svc.delete = AsyncMock(side_effect=NotFoundError("Notification not found"))
        resp = self.client.delete(f"/api/v1/notifications/{uuid4()}", headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 404)

    def test_delete(self) -> None:
        self.svc.delete = AsyncMock(return_value=None)
        resp = self.client.delete(f"/api/v1/notifications/{uuid4()}", headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 204)

    def test_create_test_notification_defaults(self) -> None:
        self.svc.create_custom = AsyncMock(return_value=_notification(title="Test Notification"))
        resp = self.client.post("/api/v1/notifications/test", json={}, headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 201)
        kwargs = self.svc.create_custom.await_args.kwargs
        self.assertEqual(kwargs["title"], "Test Notification")
        self.assertEqual(kwargs["message"], "This is a test notification to verify the system is working.")
        self.assertEqual(kwargs["data"]["orderNumber"], "TEST-001")
        self.assertNotIn("order_id", kwargs)

    def test_create_test_notification_forbidden_in_production(self) -> None:
        app = _make_test_app(production=True)
        with patch("marketplace.api.routers.notifications.build_notifier", return_value=self.svc):
            resp = TestClient(app).post("/api/v1/notifications/test", json={}, headers=USER_HEADERS)
        self.assertEqual(resp.status_code, 403)


# ─── application ─────────────────────────────────────────────────────────────

class TestApplication(unittest.TestCase):
    def test_health_and_routes(self) -> None:
        from marketplace.api.main import app

        paths = {route.path for route in app.routes}
        self.assertIn("/api/v1/orders", paths)
        self.assertIn("/api/v1/payments/paypal/webhook", paths)
        self.assertIn("/api/v1/notifications/unread-count", paths)
        resp = TestClient(app).get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
