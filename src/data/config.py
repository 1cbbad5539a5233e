"""
Review Trust Configuration Module
=================================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    REVIEW_STORE: "memory" or "postgres" (default: memory)

    DATABASE_HOST: PostgreSQL host (default: localhost)
    DATABASE_PORT: PostgreSQL port (default: 5432)
    DATABASE_NAME: Database name (default: reviewtrust)
    DATABASE_USER: Database user (default: reviewtrust_app)
    DATABASE_PASSWORD: Database password (required for postgres store)
    DATABASE_POOL_MIN: Minimum pool connections (default: 2)
    DATABASE_POOL_MAX: Maximum pool connections (default: 10)

    SENTIMENT_ENABLED: Run sentiment enrichment (default: true)
    SENTIMENT_PROVIDER: "openai" or "anthropic" (default: picked from API keys)
    SENTIMENT_MODEL: Model override
    SENTIMENT_TIMEOUT_SECONDS: Per-attempt timeout (default: 20)
    SENTIMENT_BACKOFF_SECONDS: Delays between retries (default: "0.5,1.5")

    SLACK_WEBHOOK_URL: Admin alert webhook
    ENABLE_NOTIFICATIONS: "true" to send admin alerts (default: false)
    REDIS_URL: Idempotency store (default: in-process store)
    NOTIFICATION_IDEMPOTENCY_TTL_SECONDS: Key lifetime (default: 7 days)

    LOG_LEVEL / LOG_JSON / LOG_FILE: Logging setup
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def get_env_float_list(key: str, default: Tuple[float, ...]) -> Tuple[float, ...]:
    """Get comma-separated environment variable as a tuple of floats."""
    value = os.getenv(key)
    if value is None:
        return default
    if not value.strip():
        return ()
    try:
        return tuple(float(part) for part in value.split(","))
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be comma-separated floats, got: {value}")


@dataclass
class StorageConfig:
    """Which review store backs the pipeline."""

    backend: str = field(default_factory=lambda: get_env("REVIEW_STORE", "memory"))

    def __post_init__(self):
        self.backend = self.backend.lower()
        if self.backend not in ("memory", "postgres"):
            raise ValueError(f"REVIEW_STORE must be 'memory' or 'postgres', got: {self.backend}")


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "reviewtrust"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "reviewtrust_app"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", required=True))

    # Connection pool settings
    pool_min_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 2))
    pool_max_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 10))

    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    # SSL mode: disable, allow, prefer, require, verify-ca, verify-full
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    @property
    def connection_dict(self) -> dict:
        """Connection parameters as dictionary for psycopg2."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
            "sslmode": self.ssl_mode,
            "connect_timeout": self.connect_timeout,
        }

    def __post_init__(self):
        """Validate configuration."""
        if not self.password:
            raise ValueError("DATABASE_PASSWORD is required")
        if self.pool_min_size > self.pool_max_size:
            raise ValueError("pool_min_size cannot exceed pool_max_size")


@dataclass
class SentimentConfig:
    """Sentiment enrichment (external text-analysis collaborator)."""

    enabled: bool = field(default_factory=lambda: get_env_bool("SENTIMENT_ENABLED", True))
    provider: Optional[str] = field(default_factory=lambda: get_env("SENTIMENT_PROVIDER"))
    model: Optional[str] = field(default_factory=lambda: get_env("SENTIMENT_MODEL"))
    timeout_seconds: float = field(default_factory=lambda: get_env_float("SENTIMENT_TIMEOUT_SECONDS", 20.0))

    # One delay per retry: 1 initial attempt + len(backoff_seconds) retries
    backoff_seconds: Tuple[float, ...] = field(
        default_factory=lambda: get_env_float_list("SENTIMENT_BACKOFF_SECONDS", (0.5, 1.5))
    )

    def __post_init__(self):
        if self.provider and self.provider not in ("openai", "anthropic"):
            raise ValueError(f"SENTIMENT_PROVIDER must be 'openai' or 'anthropic', got: {self.provider}")
        if self.timeout_seconds <= 0:
            raise ValueError("SENTIMENT_TIMEOUT_SECONDS must be positive")
        if any(delay < 0 for delay in self.backoff_seconds):
            raise ValueError("SENTIMENT_BACKOFF_SECONDS cannot contain negative delays")


@dataclass
class NotificationConfig:
    """Admin alerting for flagged reviews."""

    slack_webhook_url: str = field(default_factory=lambda: get_env("SLACK_WEBHOOK_URL", ""))
    enabled: bool = field(default_factory=lambda: get_env_bool("ENABLE_NOTIFICATIONS", False))
    redis_url: Optional[str] = field(default_factory=lambda: get_env("REDIS_URL"))
    idempotency_ttl_seconds: int = field(
        default_factory=lambda: get_env_int("NOTIFICATION_IDEMPOTENCY_TTL_SECONDS", 7 * 24 * 3600)
    )

    def __post_init__(self):
        if self.idempotency_ttl_seconds <= 0:
            raise ValueError("NOTIFICATION_IDEMPOTENCY_TTL_SECONDS must be positive")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    sentiment: SentimentConfig = field(default_factory=SentimentConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    app_name: str = "reviewtrust"
    app_version: str = "1.0.0"
    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))

    @property
    def database(self) -> DatabaseConfig:
        """Built on access: only the postgres store needs credentials."""
        return DatabaseConfig()

    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
