"""FastAPI dependency providers."""
from __future__ import annotations

import hmac
from collections.abc import AsyncGenerator
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import AppConfig
from marketplace.core.exceptions import ConfigurationError, UnauthorizedError
from marketplace.integrations.paypal import PayPalClient
from marketplace.services.notification_service import NotificationService

DEFAULT_ADMIN_ID = "admin"


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional AsyncSession from the app-level session factory."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_app_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    return config if config is not None else AppConfig()


def get_payment_gateway(request: Request) -> PayPalClient:
    gateway = getattr(request.app.state, "paypal", None)
    if gateway is None:
        raise ConfigurationError("PayPal is not configured")
    return gateway


def build_notifier(request: Request, session: AsyncSession) -> NotificationService:
    return NotificationService(session, email_client=getattr(request.app.state, "email_client", None))


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> UUID:
    """Customer identity from the X-User-ID header."""
    if not x_user_id:
        raise UnauthorizedError("X-User-ID header is required")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise UnauthorizedError("X-User-ID must be a UUID") from None


async def require_admin(
    x_api_key: Optional[str] = Header(None),
    x_admin_id: Optional[str] = Header(None),
    config: AppConfig = Depends(get_app_config),
) -> str:
    """Admin gate: X-Api-Key must equal ADMIN_API_KEY when one is configured.

    Returns the acting admin id for audit fields.
    """
    if config.admin_api_key:
        if not x_api_key or not hmac.compare_digest(x_api_key, config.admin_api_key):
            raise UnauthorizedError("Unauthorized: set X-Api-Key header")
    return (x_admin_id or DEFAULT_ADMIN_ID)[:64]
