"""Orders API: placement, customer actions and admin lifecycle management."""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import (
    build_notifier,
    get_app_config,
    get_current_user_id,
    get_session,
    require_admin,
)
from marketplace.api.schemas.base import Pagination, page_count
from marketplace.api.schemas.notifications import NotificationResponse, notification_to_schema
from marketplace.api.schemas.orders import (
    AdminNoteRequest,
    AdminOrderListResponse,
    AssignRequest,
    AttachmentRequest,
    CancelRequest,
    CustomerNoteRequest,
    FeedbackRequest,
    OrderCreatedResponse,
    OrderCreateRequest,
    OrderListResponse,
    OrderResponse,
    RevisionRequest,
    SampleNotificationRequest,
    StatusUpdateRequest,
    order_to_schema,
)
from marketplace.config import AppConfig
from marketplace.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def _service(request: Request, session: AsyncSession) -> OrderService:
    return OrderService(session, notifier=build_notifier(request, session))


# ── Customer ──────────────────────────────────────────────────────────────────

@router.post("", response_model=OrderCreatedResponse, status_code=201)
async def create_order(
    body: OrderCreateRequest,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Place an order. Pricing is recomputed from the product; the client's figures are ignored."""
    svc = _service(request, session)
    customer = body.customer_info
    order = await svc.create_order(
        user_id,
        service_id=body.service_id,
        customer={
            "first_name": customer.first_name,
            "last_name": customer.last_name,
            "email": customer.email.lower(),
            "phone": customer.phone,
            "company": customer.company,
        },
        project_description=body.project_details.project_description,
        timeline=body.project_details.timeline,
        additional_requirements=body.project_details.additional_requirements,
    )
    return OrderCreatedResponse(order=order_to_schema(order), order_number=order.order_number)


@router.get("/my-orders", response_model=OrderListResponse)
async def my_orders(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    orders, total = await svc.list_customer_orders(user_id, page=page, limit=limit, status=status)
    return OrderListResponse(
        orders=[order_to_schema(o) for o in orders],
        pagination=Pagination(current=page, pages=page_count(total, limit), total=total),
    )


# ── Admin ─────────────────────────────────────────────────────────────────────

@router.get("/admin/all", response_model=AdminOrderListResponse)
async def admin_list_orders(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    _admin: str = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    orders, total, counts = await svc.list_admin(
        page=page,
        limit=limit,
        status=status,
        assigned_to=assigned_to,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return AdminOrderListResponse(
        orders=[order_to_schema(o) for o in orders],
        pagination=Pagination(current=page, pages=page_count(total, limit), total=total),
        status_counts=counts,
    )


@router.put("/admin/{order_number}/status", response_model=OrderResponse)
async def admin_update_status(
    order_number: str,
    body: StatusUpdateRequest,
    request: Request,
    admin_id: str = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Set any status from the enum; transition legality is not enforced for admins."""
    svc = _service(request, session)
    order = await svc.update_status(order_number, body.status, note=body.note, admin_id=admin_id)
    return order_to_schema(order)


@router.put("/admin/{order_number}/assign", response_model=OrderResponse)
async def admin_assign(
    order_number: str,
    body: AssignRequest,
    request: Request,
    admin_id: str = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    order = await svc.assign(order_number, body.assigned_to, admin_id=admin_id)
    return order_to_schema(order)


@router.post("/admin/{order_number}/notes", response_model=OrderResponse, status_code=201)
async def admin_add_note(
    order_number: str,
    body: AdminNoteRequest,
    request: Request,
    admin_id: str = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    order = await svc.add_admin_note(order_number, body.message, note_type=body.type, admin_id=admin_id)
    return order_to_schema(order)


@router.post("/test-notification/{order_number}", response_model=NotificationResponse)
async def send_test_notification(
    order_number: str,
    body: SampleNotificationRequest,
    request: Request,
    _admin: str = Depends(require_admin),
    config: AppConfig = Depends(get_app_config),
    session: AsyncSession = Depends(get_session),
):
    """Dispatch a notification of any type for an order (non-production only)."""
    svc = _service(request, session)
    notification = await svc.send_test_notification(
        order_number, body.type, production=config.is_production,
    )
    return notification_to_schema(notification)


# ── Customer, per order ───────────────────────────────────────────────────────

@router.get("/{order_number}", response_model=OrderResponse)
async def get_order(
    order_number: str,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    return order_to_schema(await svc.get_customer_order(order_number, user_id))


@router.put("/{order_number}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_number: str,
    request: Request,
    body: Optional[CancelRequest] = None,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    order = await svc.cancel_order(order_number, user_id, body.reason if body else None)
    return order_to_schema(order)


@router.post("/{order_number}/feedback", response_model=OrderResponse)
async def submit_feedback(
    order_number: str,
    body: FeedbackRequest,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    order = await svc.submit_feedback(order_number, user_id, body.rating, body.comment)
    return order_to_schema(order)


@router.post("/{order_number}/revisions", response_model=OrderResponse, status_code=201)
async def request_revision(
    order_number: str,
    body: RevisionRequest,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    order = await svc.request_revision(order_number, user_id, body.description)
    return order_to_schema(order)


@router.post("/{order_number}/notes", response_model=OrderResponse, status_code=201)
async def add_note(
    order_number: str,
    body: CustomerNoteRequest,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    svc = _service(request, session)
    order = await svc.add_customer_note(order_number, user_id, body.message)
    return order_to_schema(order)


@router.post("/{order_number}/attachments", response_model=OrderResponse, status_code=201)
async def add_attachment(
    order_number: str,
    body: AttachmentRequest,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Record attachment metadata; file storage is handled elsewhere."""
    svc = _service(request, session)
    order = await svc.add_attachment(
        order_number,
        user_id,
        filename=body.filename,
        original_name=body.original_name,
        file_type=body.file_type,
        file_size=body.file_size,
        category=body.category,
    )
    return order_to_schema(order)
