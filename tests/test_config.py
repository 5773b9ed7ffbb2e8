"""
Configuration tests: environment parsing and validation.

Usage:
    pytest tests/test_config.py -v
"""

import pytest

from shopsignal.data.config import (
    DatabaseConfig,
    RedisConfig,
    ScoringSettings,
    Settings,
    get_env,
    get_env_bool,
    get_env_int,
    get_settings,
    reset_settings,
)


class TestEnvHelpers:

    def test_int_default_and_override(self, monkeypatch):
        monkeypatch.delenv("RECALC_MAX_WORKERS", raising=False)
        assert get_env_int("RECALC_MAX_WORKERS", 4) == 4

        monkeypatch.setenv("RECALC_MAX_WORKERS", "8")
        assert get_env_int("RECALC_MAX_WORKERS", 4) == 8

    def test_invalid_int_names_variable(self, monkeypatch):
        monkeypatch.setenv("INTEREST_LOOKBACK_DAYS", "thirty")

        with pytest.raises(ValueError, match="INTEREST_LOOKBACK_DAYS"):
            ScoringSettings()

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("on", True), ("no", False)])
    def test_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("LOG_JSON", raw)
        assert get_env_bool("LOG_JSON", False) is expected

    def test_required_missing(self, monkeypatch):
        monkeypatch.delenv("SHOPSIGNAL_MISSING", raising=False)
        with pytest.raises(ValueError):
            get_env("SHOPSIGNAL_MISSING", required=True)


class TestValidation:

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError, match="STORAGE_BACKEND"):
            Settings(storage_backend="sqlite")

    def test_pool_bounds(self):
        with pytest.raises(ValueError):
            DatabaseConfig(pool_min_size=5, pool_max_size=2)

    @pytest.mark.parametrize("kwargs", [
        {"lookback_days": 0},
        {"decay_rate": -0.1},
        {"max_workers": 0},
    ])
    def test_scoring_bounds(self, kwargs):
        with pytest.raises(ValueError):
            ScoringSettings(**kwargs)

    def test_password_optional(self, monkeypatch):
        monkeypatch.delenv("DATABASE_PASSWORD", raising=False)
        assert DatabaseConfig().connection_dict["password"] == ""

    def test_workers_bounded_by_pool(self):
        """Each recalculation worker holds a pooled connection."""
        with pytest.raises(ValueError, match="RECALC_MAX_WORKERS"):
            Settings(
                database=DatabaseConfig(pool_min_size=1, pool_max_size=4),
                scoring=ScoringSettings(max_workers=8),
                storage_backend="memory",
            )

    def test_workers_equal_to_pool_accepted(self):
        settings = Settings(
            database=DatabaseConfig(pool_min_size=1, pool_max_size=4),
            scoring=ScoringSettings(max_workers=4),
            storage_backend="memory",
        )

        assert settings.scoring.max_workers == 4

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            DatabaseConfig(max_retries=-1)


class TestRedisUrl:

    def test_explicit_url_wins(self):
        assert RedisConfig(url="redis://cache:6380/2").connection_url == "redis://cache:6380/2"

    def test_built_from_parts(self):
        config = RedisConfig(url=None, host="cache", port=6380, db=1, password="s3cret")
        assert config.connection_url == "redis://:s3cret@cache:6380/1"


class TestSettingsSingleton:

    def test_reset_rereads_environment(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        reset_settings()
        try:
            assert get_settings().storage_backend == "memory"
            assert get_settings() is get_settings()
        finally:
            reset_settings()

    def test_get_settings_is_the_only_accessor(self):
        from shopsignal.data import config

        assert not hasattr(config, "settings")
        assert not hasattr(Settings, "is_production")
