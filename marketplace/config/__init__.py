"""
Marketplace config: frozen dataclasses loaded from env.

load_app_config(), load_postgres_config(), load_paypal_config(), load_email_config().
"""
from marketplace.config.app import AppConfig, load_app_config
from marketplace.config.email import EmailConfig, load_email_config
from marketplace.config.paypal import PayPalConfig, load_paypal_config
from marketplace.config.postgres import PostgresConfig, load_postgres_config

__all__ = [
    "AppConfig",
    "load_app_config",
    "EmailConfig",
    "load_email_config",
    "PayPalConfig",
    "load_paypal_config",
    "PostgresConfig",
    "load_postgres_config",
]
