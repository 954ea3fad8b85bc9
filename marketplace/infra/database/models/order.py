"""Order aggregate ORM model and its append-only child collections.

Customer and service fields are snapshots taken when the order is placed;
later profile or catalogue edits never touch them.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.core.exceptions import ConflictError, ValidationError
from marketplace.domain.delivery import expected_delivery
from marketplace.domain.pricing import PriceQuote
from marketplace.domain.statuses import (
    FEEDBACK_ALLOWED_STATUS,
    ORDER_STATUS_VALUES,
    AttachmentCategory,
    AuthorKind,
    NoteType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RevisionStatus,
    Timeline,
    can_transition_payment,
    value_of,
)
from marketplace.infra.database.models.base import Base, TimestampMixin, _uuid_pk, utcnow

INITIAL_HISTORY_NOTE = "Order created"


class Order(Base, TimestampMixin):
    """A customer's purchase of a single service, tracked from placement to delivery."""

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_order_number", "order_number", unique=True),
        Index("ix_orders_customer_user_id", "customer_user_id"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_payment_status", "payment_status"),
        Index("ix_orders_payment_transaction_id", "payment_transaction_id"),
        Index("ix_orders_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()

    order_number: Mapped[str] = mapped_column(String(32), nullable=False)

    # Customer snapshot
    customer_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    customer_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Service snapshot
    service_product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    service_name: Mapped[str] = mapped_column(String(255), nullable=False)
    service_subtitle: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    service_category: Mapped[str] = mapped_column(String(100), nullable=False)
    service_features: Mapped[List[str]] = mapped_column(JSONB, nullable=False, default=list)
    service_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Project
    project_description: Mapped[str] = mapped_column(Text, nullable=False)
    project_timeline: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Timeline.STANDARD.value,
    )
    project_additional_requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    project_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    project_expected_delivery_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    project_actual_delivery_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    # Pricing
    pricing_subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    pricing_tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    pricing_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    pricing_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    pricing_timeline_adjustment: Mapped[Decimal] = mapped_column(
        Numeric(6, 4), nullable=False, default=Decimal("0"),
    )
    """Signed fraction applied to the base price (0.5 = +50%)."""

    # Payment
    payment_method: Mapped[str] = mapped_column(
        String(32), nullable=False, default=PaymentMethod.PAYPAL.value,
    )
    payment_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PaymentStatus.PENDING.value,
    )
    payment_transaction_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    """Provider order id while processing; capture id once completed."""
    payment_paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_refund_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=OrderStatus.PENDING.value,
    )
    assigned_to: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Feedback
    feedback_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    feedback_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    feedback_submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    """Optimistic concurrency counter; a stale write raises StaleDataError."""

    __mapper_args__ = {"version_id_col": version}

    status_history: Mapped[List["OrderStatusHistory"]] = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.sequence",
        lazy="selectin",
    )
    notes: Mapped[List["OrderNote"]] = relationship(
        "OrderNote",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderNote.created_at",
        lazy="selectin",
    )
    attachments: Mapped[List["OrderAttachment"]] = relationship(
        "OrderAttachment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderAttachment.uploaded_at",
        lazy="selectin",
    )
    revisions: Mapped[List["OrderRevision"]] = relationship(
        "OrderRevision",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderRevision.requested_at",
        lazy="selectin",
    )

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    def create(
        cls,
        *,
        order_number: str,
        customer_user_id: uuid.UUID,
        customer: dict[str, Any],
        product: Any,
        project_description: str,
        timeline: str,
        quote: PriceQuote,
        additional_requirements: Optional[str] = None,
        payment_method: str = PaymentMethod.PAYPAL.value,
    ) -> "Order":
        """Build a pending order from snapshots and a computed quote.

        The first status-history entry is recorded here, so every order
        starts with ``status_history[0].status == "pending"``.
        """
        order = cls(
            order_number=order_number,
            customer_user_id=customer_user_id,
            customer_first_name=customer["first_name"],
            customer_last_name=customer["last_name"],
            customer_email=customer["email"],
            customer_phone=customer["phone"],
            customer_company=customer.get("company"),
            service_product_id=product.id,
            service_name=product.name,
            service_subtitle=getattr(product, "subtitle", None),
            service_category=product.category,
            service_features=list(getattr(product, "features", None) or []),
            service_image=getattr(product, "image", None),
            project_description=project_description,
            project_timeline=value_of(timeline),
            project_additional_requirements=additional_requirements,
            pricing_subtotal=quote.subtotal,
            pricing_tax=quote.tax,
            pricing_total=quote.total,
            pricing_currency=quote.currency,
            pricing_timeline_adjustment=quote.timeline_adjustment,
            payment_method=value_of(payment_method),
            payment_status=PaymentStatus.PENDING.value,
            status=OrderStatus.PENDING.value,
            status_history=[],
            notes=[],
            attachments=[],
            revisions=[],
        )
        order.add_status_history(OrderStatus.PENDING, INITIAL_HISTORY_NOTE, None)
        return order

    # ── Lifecycle ─────────────────────────────────────────────────

    def add_status_history(
        self,
        status: str | OrderStatus,
        note: Optional[str] = None,
        updated_by: Optional[str] = None,
    ) -> "OrderStatusHistory":
        """Append an audit entry and set ``status`` to match it.

        Transition legality is the caller's concern; only membership in the
        status enum is checked.
        """
        value = value_of(status)
        if value not in ORDER_STATUS_VALUES:
            raise ValidationError("Invalid status", details={"status": value})
        entry = OrderStatusHistory(
            status=value,
            note=note,
            updated_by=updated_by,
            sequence=len(self.status_history),
            timestamp=utcnow(),
        )
        self.status_history.append(entry)
        self.status = value
        return entry

    def add_note(
        self,
        message: str,
        author_id: Optional[str],
        author_kind: str | AuthorKind,
        note_type: str | NoteType = NoteType.INTERNAL,
    ) -> "OrderNote":
        note = OrderNote(
            message=message,
            author_id=author_id,
            author_kind=value_of(author_kind),
            type=value_of(note_type),
            created_at=utcnow(),
        )
        self.notes.append(note)
        return note

    def add_attachment(
        self,
        *,
        filename: str,
        original_name: str,
        file_type: str,
        file_size: int,
        uploaded_by: Optional[str],
        uploader_kind: str | AuthorKind,
        category: str | AttachmentCategory = AttachmentCategory.REQUIREMENT,
    ) -> "OrderAttachment":
        attachment = OrderAttachment(
            filename=filename,
            original_name=original_name,
            file_type=file_type,
            file_size=file_size,
            uploaded_by=uploaded_by,
            uploader_kind=value_of(uploader_kind),
            category=value_of(category),
            uploaded_at=utcnow(),
        )
        self.attachments.append(attachment)
        return attachment

    def add_revision(self, description: str) -> "OrderRevision":
        revision = OrderRevision(
            description=description,
            status=RevisionStatus.PENDING.value,
            requested_at=utcnow(),
        )
        self.revisions.append(revision)
        return revision

    def calculate_delivery_date(self) -> datetime:
        start = self.project_start_date or self.created_at or utcnow()
        self.project_expected_delivery_date = expected_delivery(start, self.project_timeline)
        return self.project_expected_delivery_date

    def start_work(self, now: Optional[datetime] = None) -> bool:
        """Record the start date once and derive the expected delivery date from it."""
        if self.project_start_date is not None:
            return False
        self.project_start_date = now or utcnow()
        self.calculate_delivery_date()
        return True

    def set_actual_delivery_date(self, now: Optional[datetime] = None) -> bool:
        if self.project_actual_delivery_date is not None:
            return False
        self.project_actual_delivery_date = now or utcnow()
        return True

    def submit_feedback(self, rating: int, comment: Optional[str] = None) -> None:
        if self.status != FEEDBACK_ALLOWED_STATUS:
            raise ConflictError(
                "Can only provide feedback for completed orders",
                details={"status": self.status},
            )
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5", details={"rating": rating})
        self.feedback_rating = rating
        self.feedback_comment = comment
        self.feedback_submitted_at = utcnow()

    # ── Payment ───────────────────────────────────────────────────

    def set_payment_status(self, target: str | PaymentStatus) -> None:
        value = value_of(target)
        if not can_transition_payment(self.payment_status, value):
            raise ConflictError(
                f"Payment cannot move from {self.payment_status} to {value}",
                details={"from": self.payment_status, "to": value},
            )
        self.payment_status = value

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED.value

    @property
    def customer_name(self) -> str:
        return f"{self.customer_first_name} {self.customer_last_name}".strip()

    def __repr__(self) -> str:
        return (
            f"Order(order_number={self.order_number!r}, status={self.status!r}, "
            f"payment={self.payment_status!r})"
        )


class OrderStatusHistory(Base):
    """Append-only audit entry; ``sequence`` preserves insertion order."""

    __tablename__ = "order_status_history"
    __table_args__ = (
        Index("ix_order_status_history_order_id_sequence", "order_id", "sequence", unique=True),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    order: Mapped["Order"] = relationship("Order", back_populates="status_history")


class OrderNote(Base):
    __tablename__ = "order_notes"
    __table_args__ = (Index("ix_order_notes_order_id", "order_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=NoteType.INTERNAL.value)
    """internal | client | system."""
    message: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    author_kind: Mapped[str] = mapped_column(String(8), nullable=False)
    """User | Admin."""
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    order: Mapped["Order"] = relationship("Order", back_populates="notes")


class OrderAttachment(Base):
    __tablename__ = "order_attachments"
    __table_args__ = (Index("ix_order_attachments_order_id", "order_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    uploader_kind: Mapped[str] = mapped_column(String(8), nullable=False)
    category: Mapped[str] = mapped_column(
        String(16), nullable=False, default=AttachmentCategory.REQUIREMENT.value,
    )
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    order: Mapped["Order"] = relationship("Order", back_populates="attachments")


class OrderRevision(Base):
    __tablename__ = "order_revisions"
    __table_args__ = (Index("ix_order_revisions_order_id", "order_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RevisionStatus.PENDING.value)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="revisions")
