"""Async repositories, one per aggregate."""
from marketplace.infra.database.repositories.base import BaseRepository, paginate
from marketplace.infra.database.repositories.notification import NotificationRepository
from marketplace.infra.database.repositories.order import OrderRepository
from marketplace.infra.database.repositories.product import ProductRepository
from marketplace.infra.database.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "NotificationRepository",
    "OrderRepository",
    "ProductRepository",
    "UserRepository",
    "paginate",
]
