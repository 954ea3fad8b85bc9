"""
marketplace.config.postgres – PostgreSQL connection config (dataclass + validators).

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT,
DB_POOL_RECYCLE, DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from marketplace.config.env import env_bool, env_int


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValueError("DATABASE_URL is required and must be non-empty")
    if not (
        url.startswith("postgresql://")
        or url.startswith("postgres://")
        or url.startswith("postgresql+asyncpg://")
    ):
        raise ValueError(
            "DATABASE_URL must start with postgresql://, postgres:// "
            "or postgresql+asyncpg://"
        )
    return url


@dataclass(frozen=True)
class PostgresConfig:
    """
    PostgreSQL connection and pool configuration.

    All fields are validated on construction. Use load_postgres_config()
    to build from environment variables.
    """

    url: str
    """DSN. Converted to postgresql+asyncpg:// by the engine."""

    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    """Seconds to wait for a pooled connection."""

    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "marketplace-api"

    def __post_init__(self) -> None:
        _validate_url(self.url)
        for name in ("pool_size", "pool_timeout", "pool_recycle"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be an integer >= 1, got {value!r}")
        if not isinstance(self.max_overflow, int) or self.max_overflow < 0:
            raise ValueError(f"max_overflow must be a non-negative integer, got {self.max_overflow!r}")
        if not self.application_name.strip():
            raise ValueError("application_name must be a non-empty string")

    @classmethod
    def from_env(cls, **overrides: object) -> PostgresConfig:
        """Build config from environment; keyword overrides win over env."""
        raw_url = overrides.get("url") or os.environ.get(
            "DATABASE_URL", "postgresql://localhost/marketplace"
        )
        return cls(
            url=_validate_url(str(raw_url)),
            pool_size=int(overrides.get("pool_size") or env_int("DB_POOL_SIZE", 10)),
            max_overflow=int(
                overrides["max_overflow"] if "max_overflow" in overrides
                else env_int("DB_MAX_OVERFLOW", 20)
            ),
            pool_timeout=int(overrides.get("pool_timeout") or env_int("DB_POOL_TIMEOUT", 30)),
            pool_recycle=int(overrides.get("pool_recycle") or env_int("DB_POOL_RECYCLE", 1800)),
            echo=bool(overrides.get("echo", env_bool("DB_ECHO", False))),
            application_name=str(
                overrides.get("application_name")
                or os.environ.get("DB_APPLICATION_NAME", "marketplace-api")
            ),
        )


def load_postgres_config(**overrides: object) -> PostgresConfig:
    """Load and validate PostgreSQL config. Raises ValueError on invalid env."""
    return PostgresConfig.from_env(**overrides)
