"""Unit tests for environment-driven settings."""

import pytest

from stockkeeper.domain.exceptions import ConfigurationError
from stockkeeper.infrastructure.config import default_database_url, load_settings


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings({})

        assert settings.database_url == default_database_url()
        assert settings.database_url.startswith("sqlite+aiosqlite:///")
        assert settings.log_level == "INFO"
        assert settings.checkout_timeout is None
        assert settings.pending_order_ttl_minutes is None
        assert (settings.default_min_threshold, settings.default_max_threshold) == (5, 1000)
        assert settings.history_limit == 50

    def test_overrides(self):
        settings = load_settings(
            {
                "STOCKKEEPER_DATABASE_URL": "postgresql+asyncpg://shop@db/stock",
                "STOCKKEEPER_LOG_LEVEL": "debug",
                "STOCKKEEPER_CHECKOUT_TIMEOUT": "2.5",
                "STOCKKEEPER_PENDING_ORDER_TTL_MINUTES": "45",
                "STOCKKEEPER_DEFAULT_MIN_THRESHOLD": "2",
                "STOCKKEEPER_DEFAULT_MAX_THRESHOLD": "20",
                "STOCKKEEPER_HISTORY_LIMIT": "10",
            }
        )

        assert settings.database_url == "postgresql+asyncpg://shop@db/stock"
        assert settings.log_level == "DEBUG"
        assert settings.checkout_timeout == 2.5
        assert settings.pending_order_ttl_minutes == 45
        assert (settings.default_min_threshold, settings.default_max_threshold) == (2, 20)
        assert settings.history_limit == 10

    def test_blank_values_fall_back_to_defaults(self):
        settings = load_settings({"STOCKKEEPER_CHECKOUT_TIMEOUT": "  ", "STOCKKEEPER_DATABASE_URL": ""})
        assert settings.checkout_timeout is None
        assert settings.database_url == default_database_url()

    @pytest.mark.parametrize(
        "env, message",
        [
            ({"STOCKKEEPER_LOG_LEVEL": "LOUD"}, "Unknown log level"),
            ({"STOCKKEEPER_CHECKOUT_TIMEOUT": "soon"}, "must be a number"),
            ({"STOCKKEEPER_CHECKOUT_TIMEOUT": "0"}, "must be positive"),
            ({"STOCKKEEPER_PENDING_ORDER_TTL_MINUTES": "1.5"}, "must be an integer"),
            ({"STOCKKEEPER_PENDING_ORDER_TTL_MINUTES": "-5"}, "must be positive"),
            ({"STOCKKEEPER_HISTORY_LIMIT": "0"}, "must be positive"),
            (
                {"STOCKKEEPER_DEFAULT_MIN_THRESHOLD": "30", "STOCKKEEPER_DEFAULT_MAX_THRESHOLD": "10"},
                "Invalid default thresholds",
            ),
        ],
    )
    def test_invalid_values(self, env, message):
        with pytest.raises(ConfigurationError, match=message):
            load_settings(env)
