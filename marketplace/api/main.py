"""Marketplace FastAPI application: entry point.

Start with:
    uvicorn marketplace.api.main:app --reload --host 0.0.0.0 --port 8000

PayPal is optional at startup: without PAYPAL_CLIENT_ID / PAYPAL_CLIENT_SECRET
the payment endpoints answer 500 "PayPal is not configured" and everything
else works. Without EMAIL_API_URL notification emails are only logged.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from marketplace.api.errors import register_exception_handlers
from marketplace.config import load_app_config, load_email_config, load_paypal_config
from marketplace.core.logger import configure as configure_logging
from marketplace.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from marketplace.integrations.email import build_email_client
from marketplace.integrations.paypal import PayPalClient

logger = logging.getLogger(__name__)

_config = load_app_config()


def _build_paypal_client(config) -> PayPalClient | None:
    try:
        paypal_config = load_paypal_config(config)
    except ValueError as exc:
        logger.warning("API: PayPal disabled (%s)", exc)
        return None
    logger.info("API: PayPal client ready (%s mode)", paypal_config.mode)
    return PayPalClient(paypal_config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure_logging()

    await ensure_database_exists()
    engine = build_engine()
    session_factory = build_session_factory(engine)
    await init_db()

    app.state.session_factory = session_factory
    app.state.config = _config
    app.state.paypal = _build_paypal_client(_config)
    app.state.email_client = build_email_client(load_email_config())
    logger.info("API: ready (%s)", _config.environment)

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    await close_engine()
    logger.info("API: engine disposed")


app = FastAPI(
    title="Marketplace API",
    version="1.0.0",
    description="Orders, PayPal payments and notifications for the digital-services marketplace.",
    lifespan=lifespan,
)

# Rate limiter: RATE_LIMIT env var (default 60/minute) per client address
limiter = Limiter(key_func=get_remote_address, default_limits=[_config.rate_limit])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_config.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app, production=_config.is_production)


# ── Routers ───────────────────────────────────────────────────────
from marketplace.api.routers import notifications, orders, payments  # noqa: E402

app.include_router(orders.router, prefix="/api/v1")
app.include_router(payments.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
