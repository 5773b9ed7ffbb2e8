"""Shared fixtures for the Shopsignal test-suite."""

import pytest

from shopsignal.data.config import (
    DatabaseConfig,
    LoggingConfig,
    RedisConfig,
    SchedulerConfig,
    ScoringSettings,
    Settings,
)
from shopsignal.orchestrator.services import build_services


@pytest.fixture
def memory_settings():
    """Settings for the in-process backend, independent of the environment."""
    return Settings(
        database=DatabaseConfig(password=""),
        redis=RedisConfig(url=None, prefix="test", session_ttl_seconds=1800),
        scoring=ScoringSettings(lookback_days=30, decay_rate=0.1, max_workers=2),
        scheduler=SchedulerConfig(cron_hour="*", cron_minute="0", timezone="UTC"),
        logging=LoggingConfig(level="WARNING", log_file=None, json_logs=False),
        storage_backend="memory",
        environment="test",
    )


@pytest.fixture
def memory_services(memory_settings):
    services = build_services(memory_settings)
    yield services
    services.close()
