"""
Project logger: console plus optional rotating JSON file.

Usage:
    from marketplace.core.logger import configure, LoggerConfig

    configure()  # LoggerConfig.from_env(): LOG_LEVEL, LOG_DIR, ...
    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/marketplace"))

Modules keep using ``logging.getLogger(__name__)``; names under
``marketplace.`` inherit the configured handlers.
"""
from marketplace.core.logger.config import LoggerConfig
from marketplace.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from marketplace.core.logger.setup import (
    build_console_handler,
    build_rotating_file_handler,
    configure,
    get_logger,
)

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "get_logger",
    "build_rotating_file_handler",
    "build_console_handler",
]
