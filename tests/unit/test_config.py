"""
Tests for core.config module.
"""
import pytest

from core.config import (
    AnalyticsConfig,
    AppConfig,
    ChatConfig,
    ConfigurationError,
    DatabaseConfig,
    load_config,
    validate_config,
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable load_config reads."""
    for name in (
        "DATABASE_URL", "DB_POOL_SIZE", "DB_QUERY_TIMEOUT", "PORT", "WEB_HOST",
        "FRONTEND_URL", "ANTHROPIC_API_KEY", "CHAT_MODEL", "CHAT_CONTEXT_ROWS",
        "DISPLAY_TIMEZONE", "UNIT_PRICE", "LOG_LEVEL", "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self, clean_env, tmp_path):
        config = load_config(env_file=str(tmp_path / "missing.env"))

        assert config.database.url == ""
        assert config.database.pool_size == 4
        assert config.web.port == 3001
        assert config.web.allowed_origin == "http://localhost:8080"
        assert config.chat.api_key == ""
        assert config.chat.context_rows == 30
        assert config.analytics.unit_price == 100.0
        assert config.logging.json_format is False

    def test_from_environment(self, clean_env, tmp_path):
        clean_env.setenv("DATABASE_URL", "duckdb:///data/ops.duckdb")
        clean_env.setenv("DB_POOL_SIZE", "8")
        clean_env.setenv("PORT", "8000")
        clean_env.setenv("FRONTEND_URL", "https://ops.example.com")
        clean_env.setenv("UNIT_PRICE", "12.5")
        clean_env.setenv("LOG_FORMAT", "json")

        config = load_config(env_file=str(tmp_path / "missing.env"))

        assert config.database.url == "duckdb:///data/ops.duckdb"
        assert config.database.pool_size == 8
        assert config.web.port == 8000
        assert config.web.allowed_origin == "https://ops.example.com"
        assert config.analytics.unit_price == 12.5
        assert config.logging.json_format is True

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DATABASE_URL=:memory:\nCHAT_CONTEXT_ROWS=10\n")

        config = load_config(env_file=str(env_file))

        assert config.database.url == ":memory:"
        assert config.chat.context_rows == 10

    def test_bad_integer(self, clean_env, tmp_path):
        clean_env.setenv("DB_POOL_SIZE", "four")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(env_file=str(tmp_path / "missing.env"))
        assert "DB_POOL_SIZE" in str(exc_info.value)


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid(self):
        validate_config(AppConfig(database=DatabaseConfig(url=":memory:")))

    def test_missing_database_url(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(AppConfig())
        assert "DATABASE_URL" in str(exc_info.value)

    def test_collects_all_errors(self):
        config = AppConfig(
            database=DatabaseConfig(url="", pool_size=0),
            chat=ChatConfig(context_rows=500),
            analytics=AnalyticsConfig(timezone="Mars/Olympus"),
        )
        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(config)

        message = str(exc_info.value)
        assert "DATABASE_URL" in message
        assert "DB_POOL_SIZE" in message
        assert "CHAT_CONTEXT_ROWS" in message
        assert "DISPLAY_TIMEZONE" in message

    def test_missing_api_key_is_allowed(self):
        """The chat assistant is optional; the server starts without it."""
        validate_config(AppConfig(database=DatabaseConfig(url=":memory:"), chat=ChatConfig(api_key="")))
