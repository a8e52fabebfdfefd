"""
Unit tests for ServerConfig and boolean parsing.
"""

import pytest

from importserver.config import DEFAULT_PORT, ServerConfig, parse_bool
from importserver.content import ContentMode


class TestParseBool:
    """Tests for parse_bool()."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "t", "yes", "on", " True "])
    def test_true_values(self, value: str):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "f", "no", "off", ""])
    def test_false_values(self, value: str):
        assert parse_bool(value) is False

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            parse_bool("maybe")


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        """Default config serves CSV on 1709 with a 20 second grace period."""
        config = ServerConfig()

        assert config.port == DEFAULT_PORT == 1709
        assert config.sql is False
        assert config.mode is ContentMode.CSV
        assert config.shutdown_timeout == 20.0
        config.validate()

    def test_sql_mode(self):
        assert ServerConfig(sql=True).mode is ContentMode.SQL

    def test_frozen(self):
        config = ServerConfig()
        with pytest.raises(AttributeError):
            config.port = 8080

    def test_port_zero_rejected(self):
        """Port 0 means the port was never supplied."""
        with pytest.raises(ValueError, match="must supply --port"):
            ServerConfig(port=0).validate()

    @pytest.mark.parametrize("port", [-1, 65536])
    def test_port_out_of_range(self, port: int):
        with pytest.raises(ValueError, match="Invalid port"):
            ServerConfig(port=port).validate()

    def test_invalid_timeouts(self):
        with pytest.raises(ValueError):
            ServerConfig(timeout=0).validate()
        with pytest.raises(ValueError):
            ServerConfig(shutdown_timeout=-1).validate()

    def test_small_buffer_rejected(self):
        with pytest.raises(ValueError):
            ServerConfig(buffer_size=512).validate()


class TestFromEnv:
    """Tests for ServerConfig.from_env()."""

    def test_no_environment(self, monkeypatch: pytest.MonkeyPatch):
        for name in ("HOST", "PORT", "SQL", "LOG_LEVEL", "SHUTDOWN_TIMEOUT"):
            monkeypatch.delenv(f"IMPORT_SERVER_{name}", raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("IMPORT_SERVER_HOST", "127.0.0.1")
        monkeypatch.setenv("IMPORT_SERVER_PORT", "8000")
        monkeypatch.setenv("IMPORT_SERVER_SQL", "true")
        monkeypatch.setenv("IMPORT_SERVER_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("IMPORT_SERVER_SHUTDOWN_TIMEOUT", "2.5")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 8000
        assert config.mode is ContentMode.SQL
        assert config.log_level == "DEBUG"
        assert config.shutdown_timeout == 2.5

    def test_invalid_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("IMPORT_SERVER_SQL", "sometimes")
        with pytest.raises(ValueError):
            ServerConfig.from_env()
