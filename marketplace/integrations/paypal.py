"""PayPal REST client: checkout orders, captures, refunds and webhook verification.

Business failures (declined capture, invalid order id, provider 4xx/5xx) come
back as a result with ``success=False``. Only transport or authentication
failures raise UpstreamPaymentError.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import httpx

from marketplace.config.paypal import PayPalConfig
from marketplace.core.exceptions import UpstreamPaymentError

logger = logging.getLogger(__name__)

TOKEN_REFRESH_MARGIN = 60.0
"""Seconds before expiry at which a cached token is considered stale."""

# Fixed split used by the storefront since launch: the provider breakdown
# treats 4.762% of the total as tax when no exact tax is supplied.
LEGACY_TAX_FRACTION = Decimal("0.04762")

_CENT = Decimal("0.01")

Amount = Union[Decimal, float, int, str]


def format_amount(value: Amount) -> str:
    """Provider amounts are strings with exactly two decimals."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return str(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def amount_breakdown(amount: Amount, tax: Optional[Amount] = None) -> tuple[str, str]:
    """(item_total, tax_total) for a purchase unit.

    The tax is either the exact figure or the legacy fraction of the total,
    rounded to cents. The item total is the rounded total minus that tax, so
    the two parts always add up to ``amount.value``.
    """
    total = Decimal(format_amount(amount))
    if tax is None:
        tax_total = Decimal(format_amount(total * LEGACY_TAX_FRACTION))
    else:
        tax_total = Decimal(format_amount(tax))
    return format_amount(total - tax_total), format_amount(tax_total)


# ── Results ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class PayPalResult:
    success: bool
    error: Optional[str] = None
    details: Any = None


@dataclass(frozen=True)
class CreateOrderResult(PayPalResult):
    order_id: Optional[str] = None
    status: Optional[str] = None
    links: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def approval_url(self) -> Optional[str]:
        for link in self.links:
            if link.get("rel") in ("approve", "payer-action"):
                return link.get("href")
        return None


@dataclass(frozen=True)
class CaptureResult(PayPalResult):
    capture_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[Dict[str, Any]] = None
    payer: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class RefundResult(PayPalResult):
    refund_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class OrderDetailsResult(PayPalResult):
    pass


# ── Token cache ───────────────────────────────────────────────────


@dataclass
class TokenCache:
    """Bearer token with its absolute expiry on the client's clock.

    Not locked: two calls racing through a refresh both fetch a token,
    which the provider's token endpoint tolerates.
    """

    token: Optional[str] = None
    expires_at: float = 0.0

    def get(self, now: float) -> Optional[str]:
        if self.token and now < self.expires_at - TOKEN_REFRESH_MARGIN:
            return self.token
        return None

    def store(self, token: str, expires_in: float, now: float) -> None:
        self.token = token
        self.expires_at = now + float(expires_in)

    def clear(self) -> None:
        self.token = None
        self.expires_at = 0.0


def _error_message(response: httpx.Response, fallback: str) -> tuple[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return fallback, response.text
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error_description") or fallback), body
    return fallback, body


class PayPalClient:
    """Async PayPal Orders v2 / Payments v2 client.

    A new httpx.AsyncClient is opened per call; pass ``transport`` to route
    requests elsewhere (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        config: PayPalConfig,
        *,
        token_cache: Optional[TokenCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._tokens = token_cache if token_cache is not None else TokenCache()
        self._transport = transport
        self._clock = clock

    @property
    def config(self) -> PayPalConfig:
        return self._config

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            transport=self._transport,
        )

    async def get_access_token(self) -> str:
        now = self._clock()
        cached = self._tokens.get(now)
        if cached:
            return cached
        logger.debug("PayPalClient: requesting new access token")
        try:
            async with self._client() as client:
                resp = await client.post(
                    "/v1/oauth2/token",
                    data={"grant_type": "client_credentials"},
                    auth=(self._config.client_id, self._config.client_secret),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.error("PayPalClient: token request failed: %s", exc)
            raise UpstreamPaymentError("Failed to authenticate with PayPal", cause=exc) from exc
        if resp.status_code != 200:
            message, details = _error_message(resp, "Failed to authenticate with PayPal")
            logger.error("PayPalClient: token request rejected (status=%s): %s", resp.status_code, message)
            raise UpstreamPaymentError(
                "Failed to authenticate with PayPal",
                details={"provider": details} if isinstance(details, dict) else None,
            )
        body = resp.json()
        self._tokens.store(body["access_token"], body.get("expires_in", 0), now)
        return body["access_token"]

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Mapping[str, Any]] = None,
        prefer_representation: bool = False,
    ) -> httpx.Response:
        token = await self.get_access_token()
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        if prefer_representation:
            headers["Prefer"] = "return=representation"
        try:
            async with self._client() as client:
                return await client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("PayPalClient: %s %s failed: %s", method, path, exc)
            raise UpstreamPaymentError("PayPal request failed", cause=exc) from exc

    # ── Orders ────────────────────────────────────────────────────

    def build_order_request(
        self,
        *,
        amount: Amount,
        currency: str = "USD",
        reference_id: Optional[str] = None,
        description: Optional[str] = None,
        tax: Optional[Amount] = None,
    ) -> Dict[str, Any]:
        item_total, tax_total = amount_breakdown(amount, tax)
        name = description or "Digital Service"
        unit: Dict[str, Any] = {
            "description": name,
            "amount": {
                "currency_code": currency,
                "value": format_amount(amount),
                "breakdown": {
                    "item_total": {"currency_code": currency, "value": item_total},
                    "tax_total": {"currency_code": currency, "value": tax_total},
                },
            },
            "items": [
                {
                    "name": name[:127],
                    "description": "Professional digital service",
                    "quantity": "1",
                    "unit_amount": {"currency_code": currency, "value": item_total},
                    "category": "DIGITAL_GOODS",
                }
            ],
        }
        if reference_id:
            unit["reference_id"] = reference_id
        return {
            "intent": "CAPTURE",
            "application_context": {
                "brand_name": self._config.brand_name,
                "landing_page": "BILLING",
                "shipping_preference": "NO_SHIPPING",
                "user_action": "PAY_NOW",
                "return_url": self._config.return_url,
                "cancel_url": self._config.cancel_url,
            },
            "purchase_units": [unit],
        }

    async def create_order(
        self,
        *,
        amount: Amount,
        currency: str = "USD",
        reference_id: Optional[str] = None,
        description: Optional[str] = None,
        tax: Optional[Amount] = None,
    ) -> CreateOrderResult:
        payload = self.build_order_request(
            amount=amount, currency=currency, reference_id=reference_id,
            description=description, tax=tax,
        )
        resp = await self._request("POST", "/v2/checkout/orders", json=payload, prefer_representation=True)
        if resp.is_error:
            message, details = _error_message(resp, "Failed to create PayPal order")
            logger.error("PayPalClient: create order failed (status=%s): %s", resp.status_code, message)
            return CreateOrderResult(success=False, error=message, details=details)
        body = resp.json()
        return CreateOrderResult(
            success=True,
            order_id=body.get("id"),
            status=body.get("status"),
            links=list(body.get("links") or []),
            details=body,
        )

    async def capture_order(self, paypal_order_id: str) -> CaptureResult:
        resp = await self._request(
            "POST", f"/v2/checkout/orders/{paypal_order_id}/capture",
            json={}, prefer_representation=True,
        )
        if resp.is_error:
            message, details = _error_message(resp, "Failed to capture PayPal payment")
            logger.error(
                "PayPalClient: capture failed (order=%s status=%s): %s",
                paypal_order_id, resp.status_code, message,
            )
            return CaptureResult(success=False, error=message, details=details)
        body = resp.json()
        try:
            capture = body["purchase_units"][0]["payments"]["captures"][0]
        except (KeyError, IndexError, TypeError):
            logger.error("PayPalClient: capture response without a capture (order=%s)", paypal_order_id)
            return CaptureResult(success=False, error="PayPal returned no capture", details=body)
        return CaptureResult(
            success=True,
            capture_id=capture.get("id"),
            status=body.get("status"),
            amount=capture.get("amount"),
            payer=body.get("payer"),
            details=body,
        )

    async def get_order_details(self, paypal_order_id: str) -> OrderDetailsResult:
        resp = await self._request("GET", f"/v2/checkout/orders/{paypal_order_id}")
        if resp.is_error:
            message, details = _error_message(resp, "Failed to get PayPal order details")
            logger.error("PayPalClient: get order failed (order=%s): %s", paypal_order_id, message)
            return OrderDetailsResult(success=False, error=message, details=details)
        return OrderDetailsResult(success=True, details=resp.json())

    async def refund_payment(
        self,
        capture_id: str,
        *,
        amount: Optional[Amount] = None,
        currency: str = "USD",
        note: Optional[str] = None,
    ) -> RefundResult:
        """Refund a capture. ``amount=None`` refunds it in full."""
        payload: Dict[str, Any] = {"note_to_payer": note or "Refund for your order"}
        if amount is not None:
            payload["amount"] = {"currency_code": currency, "value": format_amount(amount)}
        resp = await self._request("POST", f"/v2/payments/captures/{capture_id}/refund", json=payload)
        if resp.is_error:
            message, details = _error_message(resp, "Failed to process PayPal refund")
            logger.error("PayPalClient: refund failed (capture=%s): %s", capture_id, message)
            return RefundResult(success=False, error=message, details=details)
        body = resp.json()
        return RefundResult(
            success=True,
            refund_id=body.get("id"),
            status=body.get("status"),
            amount=body.get("amount"),
            details=body,
        )

    # ── Webhooks ──────────────────────────────────────────────────

    async def verify_webhook_signature(self, headers: Mapping[str, str], event: Mapping[str, Any]) -> bool:
        """Ask the provider to verify a webhook delivery. Always True when verification is off."""
        if not self._config.verify_webhooks:
            return True
        if not self._config.webhook_id:
            logger.error("PayPalClient: PAYPAL_WEBHOOK_ID is not set, rejecting webhook")
            return False
        lowered = {k.lower(): v for k, v in headers.items()}
        payload = {
            "auth_algo": lowered.get("paypal-auth-algo"),
            "cert_url": lowered.get("paypal-cert-url"),
            "transmission_id": lowered.get("paypal-transmission-id"),
            "transmission_sig": lowered.get("paypal-transmission-sig"),
            "transmission_time": lowered.get("paypal-transmission-time"),
            "webhook_id": self._config.webhook_id,
            "webhook_event": dict(event),
        }
        if not all(payload[k] for k in ("auth_algo", "cert_url", "transmission_id", "transmission_sig", "transmission_time")):
            logger.warning("PayPalClient: webhook is missing signature headers")
            return False
        try:
            resp = await self._request("POST", "/v1/notifications/verify-webhook-signature", json=payload)
        except UpstreamPaymentError:
            return False
        if resp.is_error:
            logger.error("PayPalClient: webhook verification call failed (status=%s)", resp.status_code)
            return False
        return resp.json().get("verification_status") == "SUCCESS"
