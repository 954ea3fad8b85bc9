"""
marketplace.infra.database – PostgreSQL async engine, session, models and repositories.

Public API
──────────
  build_engine, build_session_factory, init_db, close_engine, ensure_database_exists
  Base, Order, Notification, Product, User (models)
  BaseRepository, OrderRepository, NotificationRepository,
  ProductRepository, UserRepository
"""
from marketplace.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from marketplace.infra.database.models import (
    Base,
    Notification,
    Order,
    Product,
    User,
)
from marketplace.infra.database.repositories import (
    BaseRepository,
    NotificationRepository,
    OrderRepository,
    ProductRepository,
    UserRepository,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "ensure_database_exists",
    "init_db",
    "close_engine",
    "Base",
    "Notification",
    "Order",
    "Product",
    "User",
    "BaseRepository",
    "NotificationRepository",
    "OrderRepository",
    "ProductRepository",
    "UserRepository",
]
