"""
Project exception system.

Usage:
    from marketplace.core.exceptions import ProjectError, ConflictError, exception_factory

    # Built-in types
    raise ConflictError("Order cannot be cancelled at this stage", details={"status": "in_progress"})

    # Add new type on demand
    ShippingError = exception_factory("ShippingError", code="SHIPPING_ERROR", http_status=422)
    raise ShippingError("Courier rejected parcel", cause=original_error)
"""
from marketplace.core.exceptions.base import ProjectError, exception_factory
from marketplace.core.exceptions.errors import (
    ConfigurationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    NotificationDispatchError,
    UnauthorizedError,
    UnknownEventTypeError,
    UpstreamPaymentError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "exception_factory",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "UpstreamPaymentError",
    "NotificationDispatchError",
    "UnknownEventTypeError",
]
