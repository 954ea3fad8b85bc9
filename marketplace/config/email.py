"""
marketplace.config.email – transactional email API settings.

Env vars: EMAIL_API_URL, EMAIL_API_KEY, EMAIL_FROM, EMAIL_TIMEOUT.
Without EMAIL_API_URL notifications are logged instead of emailed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from marketplace.config.env import env_int, env_str


@dataclass(frozen=True)
class EmailConfig:
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    sender: str = "no-reply@marketplace.local"
    timeout: int = 15

    def __post_init__(self) -> None:
        if self.api_url and not self.api_url.startswith(("http://", "https://")):
            raise ValueError("EMAIL_API_URL must start with http:// or https://")
        if "@" not in self.sender:
            raise ValueError(f"EMAIL_FROM must be an email address, got {self.sender!r}")
        if self.timeout < 1:
            raise ValueError(f"timeout must be a positive integer, got {self.timeout!r}")

    @property
    def enabled(self) -> bool:
        return bool(self.api_url)

    @classmethod
    def from_env(cls) -> EmailConfig:
        return cls(
            api_url=env_str("EMAIL_API_URL"),
            api_key=env_str("EMAIL_API_KEY"),
            sender=env_str("EMAIL_FROM") or "no-reply@marketplace.local",
            timeout=env_int("EMAIL_TIMEOUT", 15),
        )


def load_email_config() -> EmailConfig:
    return EmailConfig.from_env()
