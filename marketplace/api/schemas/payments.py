"""PayPal payment request and response schemas."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from marketplace.api.schemas.base import CamelModel


class CreateCheckoutRequest(CamelModel):
    order_number: str = Field(..., min_length=1)
    amount: Optional[Decimal] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=127)


class CreateDirectOrderRequest(CamelModel):
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=127)


class CaptureDirectOrderRequest(CamelModel):
    paypal_order_id: str = Field(..., min_length=1)


class CaptureOrderRequest(CamelModel):
    paypal_order_id: str = Field(..., min_length=1)
    order_number: str = Field(..., min_length=1)


class RefundRequest(CamelModel):
    order_number: str = Field(..., min_length=1)
    amount: Optional[Decimal] = Field(None, gt=0)
    reason: Optional[str] = Field(None, min_length=1, max_length=255)


class PayPalOrderResponse(CamelModel):
    paypal_order_id: Optional[str] = None
    status: Optional[str] = None
    links: List[Dict[str, Any]] = []


class CapturedOrderSummary(CamelModel):
    order_number: str
    status: str
    payment_status: str


class CaptureResponse(CamelModel):
    capture_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[Dict[str, Any]] = None
    payer: Optional[Dict[str, Any]] = None
    order: Optional[CapturedOrderSummary] = None


class RefundResponse(CamelModel):
    refund_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[Dict[str, Any]] = None
