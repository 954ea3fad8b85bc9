"""
marketplace.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from marketplace.infra.database.models.base import Base, TimestampMixin, _uuid_pk, utcnow
from marketplace.infra.database.models.notification import Notification
from marketplace.infra.database.models.order import (
    Order,
    OrderAttachment,
    OrderNote,
    OrderRevision,
    OrderStatusHistory,
)
from marketplace.infra.database.models.product import Product
from marketplace.infra.database.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "utcnow",
    "Notification",
    "Order",
    "OrderAttachment",
    "OrderNote",
    "OrderRevision",
    "OrderStatusHistory",
    "Product",
    "User",
]
