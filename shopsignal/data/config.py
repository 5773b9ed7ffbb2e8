"""
Shopsignal Configuration Module
===============================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    STORAGE_BACKEND: "postgres" or "memory" (default: postgres)

    DATABASE_HOST: PostgreSQL host (default: localhost)
    DATABASE_PORT: PostgreSQL port (default: 5432)
    DATABASE_NAME: Database name (default: shopsignal)
    DATABASE_USER: Database user (default: shopsignal_app)
    DATABASE_PASSWORD: Database password (default: empty)
    DATABASE_POOL_MIN: Minimum pool connections (default: 2)
    DATABASE_POOL_MAX: Maximum pool connections (default: 10)
    DATABASE_STATEMENT_TIMEOUT_MS: Server-side statement timeout (default: 30000)
    DATABASE_MAX_RETRIES: Connection attempts after the first (default: 3)
    DATABASE_RETRY_BACKOFF: First retry delay in seconds, doubled each time (default: 0.5)

    REDIS_URL: Full Redis URL (overrides host/port/db)
    REDIS_HOST / REDIS_PORT / REDIS_DB / REDIS_PASSWORD
    CACHE_PREFIX: Redis key prefix (default: shopsignal)
    SESSION_TTL_SECONDS: Lifetime of a browsing session id (default: 1800)

    INTEREST_LOOKBACK_DAYS: Trailing event window (default: 30)
    INTEREST_DECAY_RATE: Exponential decay per day (default: 0.1)
    RECALC_MAX_WORKERS: Parallel workers for recalculation (default: 4), at most DATABASE_POOL_MAX

    LOG_LEVEL / LOG_FILE / LOG_JSON
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        Environment variable value or default

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


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "shopsignal"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "shopsignal_app"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", ""))

    # Connection pool settings
    pool_min_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 2))
    pool_max_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 10))

    # Connection timeout
    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    # SSL mode: disable, allow, prefer, require, verify-ca, verify-full
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    # Per-statement limit enforced by the server
    statement_timeout_ms: int = field(default_factory=lambda: get_env_int("DATABASE_STATEMENT_TIMEOUT_MS", 30000))

    # Retries on connection failures, delay doubling from retry_backoff_seconds
    max_retries: int = field(default_factory=lambda: get_env_int("DATABASE_MAX_RETRIES", 3))
    retry_backoff_seconds: float = field(default_factory=lambda: get_env_float("DATABASE_RETRY_BACKOFF", 0.5))

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
            "options": f"-c statement_timeout={self.statement_timeout_ms}",
        }

    def __post_init__(self):
        """Validate configuration."""
        if self.pool_min_size > self.pool_max_size:
            raise ValueError("pool_min_size cannot exceed pool_max_size")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")


@dataclass
class RedisConfig:
    """Redis configuration for session-scoped storage."""

    url: Optional[str] = field(default_factory=lambda: get_env("REDIS_URL"))
    host: str = field(default_factory=lambda: get_env("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("REDIS_PORT", 6379))
    db: int = field(default_factory=lambda: get_env_int("REDIS_DB", 0))
    password: Optional[str] = field(default_factory=lambda: get_env("REDIS_PASSWORD"))
    prefix: str = field(default_factory=lambda: get_env("CACHE_PREFIX", "shopsignal"))

    # A browsing session expires after this much inactivity
    session_ttl_seconds: int = field(default_factory=lambda: get_env_int("SESSION_TTL_SECONDS", 1800))

    @property
    def connection_url(self) -> str:
        """Build the Redis URL from components unless REDIS_URL is set."""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


@dataclass
class ScoringSettings:
    """
    Runtime knobs of the interest recalculation.

    The lookback window and decay rate are fixed policy; they are exposed
    here only so deployments can document and pin them explicitly.
    """

    lookback_days: int = field(default_factory=lambda: get_env_int("INTEREST_LOOKBACK_DAYS", 30))
    decay_rate: float = field(default_factory=lambda: get_env_float("INTEREST_DECAY_RATE", 0.1))
    max_workers: int = field(default_factory=lambda: get_env_int("RECALC_MAX_WORKERS", 4))

    def __post_init__(self):
        """Validate configuration."""
        if self.lookback_days <= 0:
            raise ValueError("lookback_days must be positive")
        if self.decay_rate < 0:
            raise ValueError("decay_rate cannot be negative")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")


@dataclass
class SchedulerConfig:
    """Scheduler configuration for the recurring recalculation."""

    cron_hour: str = field(default_factory=lambda: get_env("SCHEDULER_CRON_HOUR", "*"))
    cron_minute: str = field(default_factory=lambda: get_env("SCHEDULER_CRON_MINUTE", "0"))
    timezone: str = field(default_factory=lambda: get_env("SCHEDULER_TIMEZONE", "UTC"))

    # Misfire grace time (seconds to consider a missed job)
    misfire_grace_time: int = field(default_factory=lambda: get_env_int("SCHEDULER_MISFIRE_GRACE", 600))

    def get_cron_expression(self) -> str:
        """Get cron expression for logging."""
        return f"{self.cron_minute} {self.cron_hour} * * *"


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

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    storage_backend: str = field(default_factory=lambda: get_env("STORAGE_BACKEND", "postgres"))

    # Application metadata
    app_name: str = "shopsignal"
    app_version: str = "0.1.0"
    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))

    def __post_init__(self):
        if self.storage_backend not in ("postgres", "memory"):
            raise ValueError(
                f"STORAGE_BACKEND must be 'postgres' or 'memory', got: {self.storage_backend}"
            )
        if self.scoring.max_workers > self.database.pool_max_size:
            raise ValueError(
                f"RECALC_MAX_WORKERS ({self.scoring.max_workers}) cannot exceed "
                f"DATABASE_POOL_MAX ({self.database.pool_max_size})"
            )


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


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None

