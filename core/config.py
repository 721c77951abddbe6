"""
Centralized configuration for the Opsboard service.

Configuration is loaded once from environment variables (and an optional
.env file) into frozen dataclasses. The resulting AppConfig is passed
explicitly to the app factory and to every component that needs it.

Usage:
    from core.config import load_config, validate_config

    config = load_config()
    validate_config(config)
    pool_size = config.database.pool_size
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


@dataclass(frozen=True)
class DatabaseConfig:
    """Record store configuration."""

    url: str = ""
    pool_size: int = 4
    query_timeout: float = 10.0
    list_limit: int = 100


@dataclass(frozen=True)
class WebConfig:
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3001
    allowed_origin: str = "http://localhost:8080"
    request_timeout: float = 30.0
    # Applies to /api/chat only
    chat_timeout: float = 120.0


@dataclass(frozen=True)
class ChatConfig:
    """Assistant bridge configuration."""

    api_key: str = ""
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1000
    context_rows: int = 30


@dataclass(frozen=True)
class AnalyticsConfig:
    """Dashboard analytics configuration."""

    timezone: str = "UTC"
    # Placeholder price used by the sales revenue KPI
    unit_price: float = 100.0
    top_n: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json_format: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""

    version: str = "1.0.0"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    web: WebConfig = field(default_factory=WebConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer (got {value!r})")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number (got {value!r})")


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """
    Build AppConfig from the environment.

    Args:
        env_file: Optional path to a .env file (default: .env in the CWD)

    Returns:
        Immutable application configuration
    """
    load_dotenv(env_file)

    return AppConfig(
        database=DatabaseConfig(
            url=os.getenv("DATABASE_URL", ""),
            pool_size=_env_int("DB_POOL_SIZE", 4),
            query_timeout=_env_float("DB_QUERY_TIMEOUT", 10.0),
        ),
        web=WebConfig(
            host=os.getenv("WEB_HOST", "0.0.0.0"),
            port=_env_int("PORT", 3001),
            allowed_origin=os.getenv("FRONTEND_URL", "http://localhost:8080"),
        ),
        chat=ChatConfig(
            api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            model=os.getenv("CHAT_MODEL", "claude-sonnet-4-20250514"),
            context_rows=_env_int("CHAT_CONTEXT_ROWS", 30),
        ),
        analytics=AnalyticsConfig(
            timezone=os.getenv("DISPLAY_TIMEZONE", "UTC"),
            unit_price=_env_float("UNIT_PRICE", 100.0),
        ),
        logging=LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_format=os.getenv("LOG_FORMAT", "text") == "json",
        ),
    )


def validate_config(config: AppConfig) -> None:
    """
    Validate that all required configuration is present.

    Call this on application startup to fail fast with clear error messages
    instead of cryptic runtime failures.

    Raises:
        ConfigurationError: If required configuration is missing
    """
    errors: List[str] = []

    if not config.database.url:
        errors.append("DATABASE_URL is required but not set")

    if config.database.pool_size < 1:
        errors.append("DB_POOL_SIZE must be at least 1")

    if config.database.query_timeout <= 0:
        errors.append("DB_QUERY_TIMEOUT must be positive")

    if not 1 <= config.chat.context_rows <= config.database.list_limit:
        errors.append(
            f"CHAT_CONTEXT_ROWS must be between 1 and {config.database.list_limit}"
        )

    try:
        ZoneInfo(config.analytics.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"DISPLAY_TIMEZONE is not a known timezone: {config.analytics.timezone}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
