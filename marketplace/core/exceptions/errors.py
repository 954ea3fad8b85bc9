"""
Built-in exception types. Add new ones here or via exception_factory().
"""
from __future__ import annotations

from marketplace.core.exceptions.base import ProjectError


class ConfigurationError(ProjectError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Request or input validation failed."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class NotFoundError(ProjectError):
    """Requested resource not found or not owned by the caller."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class UnauthorizedError(ProjectError):
    """Caller identity missing or invalid."""

    default_code = "UNAUTHORIZED"
    default_http_status = 401


class ForbiddenError(ProjectError):
    """Access to resource is forbidden."""

    default_code = "FORBIDDEN"
    default_http_status = 403


class ConflictError(ProjectError):
    """Order state does not allow the operation (cancel, capture, feedback...).

    Served as 400, not 409: clients already branch on 400 for these.
    """

    default_code = "CONFLICT"
    default_http_status = 400


class UpstreamPaymentError(ProjectError):
    """Payment provider call failed (transport, auth or a rejected operation)."""

    default_code = "UPSTREAM_PAYMENT_ERROR"
    default_http_status = 500


class NotificationDispatchError(ProjectError):
    """Notification could not be created. Logged by callers, never returned to clients."""

    default_code = "NOTIFICATION_DISPATCH_ERROR"
    default_http_status = 500


class UnknownEventTypeError(NotificationDispatchError):
    """No template registered for the requested notification type."""

    default_code = "UNKNOWN_EVENT_TYPE"
    default_http_status = 400
