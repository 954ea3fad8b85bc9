"""
marketplace.config.app – application-wide settings.

Env vars: APP_ENV, FRONTEND_URL, CORS_ORIGINS, ADMIN_API_KEY, RATE_LIMIT.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from marketplace.config.env import env_list, env_str

_VALID_ENVIRONMENTS = frozenset({"development", "test", "production"})


@dataclass(frozen=True)
class AppConfig:
    environment: str = "development"
    frontend_url: str = "http://localhost:5173"
    cors_origins: Tuple[str, ...] = field(
        default_factory=lambda: ("http://localhost:5173", "http://127.0.0.1:5173")
    )
    admin_api_key: Optional[str] = None
    """When unset, admin endpoints are open (dev mode)."""

    rate_limit: str = "60/minute"

    def __post_init__(self) -> None:
        if self.environment not in _VALID_ENVIRONMENTS:
            raise ValueError(
                f"APP_ENV must be one of {sorted(_VALID_ENVIRONMENTS)}, got {self.environment!r}"
            )
        if not self.frontend_url.startswith(("http://", "https://")):
            raise ValueError("FRONTEND_URL must start with http:// or https://")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> AppConfig:
        frontend_url = (env_str("FRONTEND_URL") or "http://localhost:5173").rstrip("/")
        origins = env_list("CORS_ORIGINS") or [frontend_url]
        return cls(
            environment=(env_str("APP_ENV") or "development").lower(),
            frontend_url=frontend_url,
            cors_origins=tuple(origins),
            admin_api_key=env_str("ADMIN_API_KEY"),
            rate_limit=env_str("RATE_LIMIT") or "60/minute",
        )


def load_app_config() -> AppConfig:
    return AppConfig.from_env()
