"""Payments API: PayPal checkout, capture, refund and webhook."""
from __future__ import annotations

import logging
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import (
    build_notifier,
    get_current_user_id,
    get_payment_gateway,
    get_session,
    require_admin,
)
from marketplace.api.schemas.payments import (
    CapturedOrderSummary,
    CaptureDirectOrderRequest,
    CaptureOrderRequest,
    CaptureResponse,
    CreateCheckoutRequest,
    CreateDirectOrderRequest,
    PayPalOrderResponse,
    RefundRequest,
    RefundResponse,
)
from marketplace.core.exceptions import ValidationError
from marketplace.integrations.paypal import PayPalClient
from marketplace.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments/paypal", tags=["payments"])


def _service(request: Request, session: AsyncSession, gateway: PayPalClient) -> PaymentService:
    return PaymentService(session, gateway, notifier=build_notifier(request, session))


@router.post("/create-order", response_model=PayPalOrderResponse)
async def create_order(
    body: CreateCheckoutRequest,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    gateway: PayPalClient = Depends(get_payment_gateway),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session, gateway)
    result = await svc.create_checkout(
        body.order_number,
        user_id,
        amount=body.amount,
        currency=body.currency,
        description=body.description,
    )
    return PayPalOrderResponse(paypal_order_id=result.order_id, status=result.status, links=result.links)


@router.post("/create-direct-order", response_model=PayPalOrderResponse)
async def create_direct_order(
    body: CreateDirectOrderRequest,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    gateway: PayPalClient = Depends(get_payment_gateway),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session, gateway)
    result = await svc.create_direct_order(
        user_id, amount=body.amount, currency=body.currency, description=body.description,
    )
    return PayPalOrderResponse(paypal_order_id=result.order_id, status=result.status, links=result.links)


@router.post("/capture-direct-order", response_model=CaptureResponse)
async def capture_direct_order(
    body: CaptureDirectOrderRequest,
    request: Request,
    _user_id: UUID = Depends(get_current_user_id),
    gateway: PayPalClient = Depends(get_payment_gateway),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session, gateway)
    result = await svc.capture_direct_order(body.paypal_order_id)
    return CaptureResponse(
        capture_id=result.capture_id, status=result.status, amount=result.amount, payer=result.payer,
    )


@router.post("/capture-order", response_model=CaptureResponse)
async def capture_order(
    body: CaptureOrderRequest,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    gateway: PayPalClient = Depends(get_payment_gateway),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session, gateway)
    result, order = await svc.capture(body.order_number, body.paypal_order_id, user_id)
    return CaptureResponse(
        capture_id=result.capture_id,
        status=result.status,
        amount=result.amount,
        payer=result.payer,
        order=CapturedOrderSummary(
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
        ),
    )


@router.get("/order/{paypal_order_id}")
async def get_paypal_order(
    paypal_order_id: str,
    request: Request,
    _user_id: UUID = Depends(get_current_user_id),
    gateway: PayPalClient = Depends(get_payment_gateway),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """Provider order details, passed through unchanged."""
    svc = _service(request, session, gateway)
    result = await svc.get_provider_order(paypal_order_id)
    return result.details


@router.post("/refund", response_model=RefundResponse)
async def refund(
    body: RefundRequest,
    request: Request,
    admin_id: str = Depends(require_admin),
    gateway: PayPalClient = Depends(get_payment_gateway),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session, gateway)
    result = await svc.refund(body.order_number, amount=body.amount, reason=body.reason, admin_id=admin_id)
    return RefundResponse(refund_id=result.refund_id, status=result.status, amount=result.amount)


@router.post("/webhook")
async def webhook(
    request: Request,
    gateway: PayPalClient = Depends(get_payment_gateway),
    session: AsyncSession = Depends(get_session),
):
    """Provider callbacks. Public; authenticity comes from the signature check."""
    try:
        event = await request.json()
    except ValueError:
        raise ValidationError("Webhook body must be JSON") from None
    if not isinstance(event, dict):
        raise ValidationError("Webhook body must be a JSON object")
    svc = _service(request, session, gateway)
    await svc.handle_webhook(dict(request.headers), event)
    return {"success": True}
