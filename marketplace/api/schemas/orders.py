"""Order request and response schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import Field

from marketplace.api.schemas.base import CamelModel, Pagination, money
from marketplace.infra.database.models.order import Order

NoteTypeLiteral = Literal["internal", "client", "system"]
AttachmentCategoryLiteral = Literal["requirement", "deliverable", "revision", "final"]


# ── Requests ──────────────────────────────────────────────────────


class CustomerInfo(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    company: Optional[str] = Field(None, max_length=255)


class ProjectDetails(CamelModel):
    project_description: str = Field(..., min_length=1)
    timeline: str = "standard"
    additional_requirements: Optional[str] = None


class ClientPricing(CamelModel):
    """Sent by the storefront for display only; the server recomputes pricing."""

    subtotal: float
    tax: float
    total: float


class OrderCreateRequest(CamelModel):
    service_id: UUID
    customer_info: CustomerInfo
    project_details: ProjectDetails
    pricing: ClientPricing


class CancelRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=1000)


class FeedbackRequest(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class RevisionRequest(CamelModel):
    description: str = Field(..., min_length=1)


class CustomerNoteRequest(CamelModel):
    message: str = Field(..., min_length=1)


class AdminNoteRequest(CamelModel):
    message: str = Field(..., min_length=1)
    type: NoteTypeLiteral = "internal"


class AttachmentRequest(CamelModel):
    filename: str = Field(..., min_length=1, max_length=255)
    original_name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., min_length=1, max_length=100)
    file_size: int = Field(..., ge=0)
    category: AttachmentCategoryLiteral = "requirement"


class StatusUpdateRequest(CamelModel):
    status: str
    note: Optional[str] = None


class AssignRequest(CamelModel):
    assigned_to: str = Field(..., min_length=1, max_length=64)


class SampleNotificationRequest(CamelModel):
    type: str = "order_confirmed"


# ── Responses ─────────────────────────────────────────────────────


class CustomerSnapshot(CamelModel):
    user_id: UUID
    first_name: str
    last_name: str
    email: str
    phone: str
    company: Optional[str] = None


class ServiceSnapshot(CamelModel):
    product_id: UUID
    name: str
    subtitle: Optional[str] = None
    category: str
    features: List[str] = []
    image: Optional[str] = None


class ProjectSchema(CamelModel):
    description: str
    timeline: str
    additional_requirements: Optional[str] = None
    start_date: Optional[datetime] = None
    expected_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None


class PricingSchema(CamelModel):
    subtotal: float
    tax: float
    total: float
    currency: str
    timeline_adjustment: float


class PaymentSchema(CamelModel):
    method: str
    status: str
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    refund_amount: Optional[float] = None


class StatusHistoryEntry(CamelModel):
    status: str
    timestamp: datetime
    note: Optional[str] = None
    updated_by: Optional[str] = None


class NoteSchema(CamelModel):
    type: str
    message: str
    author: Optional[str] = None
    author_model: str
    timestamp: datetime


class AttachmentSchema(CamelModel):
    filename: str
    original_name: str
    file_type: str
    file_size: int
    uploaded_by: Optional[str] = None
    uploaded_by_model: str
    uploaded_at: datetime
    category: str


class RevisionSchema(CamelModel):
    description: str
    status: str
    requested_at: datetime
    completed_at: Optional[datetime] = None


class FeedbackSchema(CamelModel):
    rating: int
    comment: Optional[str] = None
    submitted_at: Optional[datetime] = None


class OrderResponse(CamelModel):
    id: UUID
    order_number: str
    customer: CustomerSnapshot
    service: ServiceSnapshot
    project: ProjectSchema
    pricing: PricingSchema
    payment: PaymentSchema
    status: str
    status_history: List[StatusHistoryEntry] = []
    assigned_to: Optional[str] = None
    notes: List[NoteSchema] = []
    attachments: List[AttachmentSchema] = []
    revisions: List[RevisionSchema] = []
    feedback: Optional[FeedbackSchema] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderCreatedResponse(CamelModel):
    order: OrderResponse
    order_number: str


class OrderListResponse(CamelModel):
    orders: List[OrderResponse]
    pagination: Pagination


class AdminOrderListResponse(OrderListResponse):
    status_counts: Dict[str, int] = {}


def order_to_schema(o: Order) -> OrderResponse:
    feedback = None
    if o.feedback_rating is not None:
        feedback = FeedbackSchema(
            rating=o.feedback_rating,
            comment=o.feedback_comment,
            submitted_at=o.feedback_submitted_at,
        )
    return OrderResponse(
        id=o.id,
        order_number=o.order_number,
        customer=CustomerSnapshot(
            user_id=o.customer_user_id,
            first_name=o.customer_first_name,
            last_name=o.customer_last_name,
            email=o.customer_email,
            phone=o.customer_phone,
            company=o.customer_company,
        ),
        service=ServiceSnapshot(
            product_id=o.service_product_id,
            name=o.service_name,
            subtitle=o.service_subtitle,
            category=o.service_category,
            features=list(o.service_features or []),
            image=o.service_image,
        ),
        project=ProjectSchema(
            description=o.project_description,
            timeline=o.project_timeline,
            additional_requirements=o.project_additional_requirements,
            start_date=o.project_start_date,
            expected_delivery_date=o.project_expected_delivery_date,
            actual_delivery_date=o.project_actual_delivery_date,
        ),
        pricing=PricingSchema(
            subtotal=money(o.pricing_subtotal),
            tax=money(o.pricing_tax),
            total=money(o.pricing_total),
            currency=o.pricing_currency,
            timeline_adjustment=money(o.pricing_timeline_adjustment) or 0.0,
        ),
        payment=PaymentSchema(
            method=o.payment_method,
            status=o.payment_status,
            transaction_id=o.payment_transaction_id,
            paid_at=o.payment_paid_at,
            refunded_at=o.payment_refunded_at,
            refund_amount=money(o.payment_refund_amount),
        ),
        status=o.status,
        status_history=[
            StatusHistoryEntry(status=h.status, timestamp=h.timestamp, note=h.note, updated_by=h.updated_by)
            for h in o.status_history
        ],
        assigned_to=o.assigned_to,
        notes=[
            NoteSchema(
                type=n.type, message=n.message, author=n.author_id,
                author_model=n.author_kind, timestamp=n.created_at,
            )
            for n in o.notes
        ],
        attachments=[
            AttachmentSchema(
                filename=a.filename,
                original_name=a.original_name,
                file_type=a.file_type,
                file_size=a.file_size,
                uploaded_by=a.uploaded_by,
                uploaded_by_model=a.uploader_kind,
                uploaded_at=a.uploaded_at,
                category=a.category,
            )
            for a in o.attachments
        ],
        revisions=[
            RevisionSchema(
                description=r.description, status=r.status,
                requested_at=r.requested_at, completed_at=r.completed_at,
            )
            for r in o.revisions
        ],
        feedback=feedback,
        created_at=o.created_at,
        updated_at=o.updated_at,
    )
