"""
marketplace.config.paypal – PayPal REST credentials and checkout settings.

Env vars: PAYPAL_CLIENT_ID, PAYPAL_CLIENT_SECRET, PAYPAL_MODE (sandbox|live),
PAYPAL_WEBHOOK_ID, PAYPAL_BRAND_NAME, PAYPAL_TIMEOUT. Return and cancel URLs are
derived from FRONTEND_URL.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from marketplace.config.app import AppConfig
from marketplace.config.env import env_int, env_str

_BASE_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


@dataclass(frozen=True)
class PayPalConfig:
    client_id: str
    client_secret: str
    mode: str = "sandbox"
    webhook_id: Optional[str] = None
    """Required to verify webhook signatures in production."""

    brand_name: str = "Marketplace"
    return_url: str = "http://localhost:5173/checkout/success"
    cancel_url: str = "http://localhost:5173/checkout/cancel"
    timeout: int = 30
    verify_webhooks: bool = False
    """True in production: webhook signatures are checked against the provider."""

    def __post_init__(self) -> None:
        if self.mode not in _BASE_URLS:
            raise ValueError(f"PAYPAL_MODE must be one of {sorted(_BASE_URLS)}, got {self.mode!r}")
        if not self.client_id or not self.client_secret:
            raise ValueError("PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET are required")
        if self.timeout < 1:
            raise ValueError(f"timeout must be a positive integer, got {self.timeout!r}")

    @property
    def base_url(self) -> str:
        return _BASE_URLS[self.mode]

    @classmethod
    def from_env(cls, app: Optional[AppConfig] = None) -> PayPalConfig:
        app = app or AppConfig.from_env()
        default_mode = "live" if app.is_production else "sandbox"
        return cls(
            client_id=env_str("PAYPAL_CLIENT_ID", "") or "",
            client_secret=env_str("PAYPAL_CLIENT_SECRET", "") or "",
            mode=(env_str("PAYPAL_MODE") or default_mode).lower(),
            webhook_id=env_str("PAYPAL_WEBHOOK_ID"),
            brand_name=env_str("PAYPAL_BRAND_NAME") or "Marketplace",
            return_url=f"{app.frontend_url}/checkout/success",
            cancel_url=f"{app.frontend_url}/checkout/cancel",
            timeout=env_int("PAYPAL_TIMEOUT", 30),
            verify_webhooks=app.is_production,
        )


def load_paypal_config(app: Optional[AppConfig] = None) -> PayPalConfig:
    return PayPalConfig.from_env(app)
