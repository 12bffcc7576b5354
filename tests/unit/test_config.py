"""
Unit tests for environment-driven configuration and logging setup.
"""

import logging
import logging.handlers

import pytest

from convert.config import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_PROXY_URL,
    DEFAULT_UPSTREAM_URL,
    get_http_timeout,
    get_proxy_url,
    get_temp_dir,
    get_upstream_settings,
    mask_secret,
)
from convert.utils.http_client import HTTPClientFactory, ServiceType, build_timeout
from convert.utils.logging_config import LogConfig, LogLevel, LoggerFactory, setup_logging


class TestUpstreamSettings:
    """Test cases for the proxy's upstream settings."""

    def test_reads_environment(self, monkeypatch):
        """Test that URL, key, origin and limit come from the environment."""
        monkeypatch.setenv("PYTHON_API_URL", "https://convert.example/api/")
        monkeypatch.setenv("API_KEY", "abcd-efgh")
        monkeypatch.setenv("JFIF2JPG_ORIGIN", "https://mirror.example")
        monkeypatch.setenv("JFIF2JPG_MAX_UPLOAD_BYTES", "1024")

        settings = get_upstream_settings()
        assert settings.convert_url == "https://convert.example/api/convert"
        assert settings.max_upload_bytes == 1024
        headers = settings.request_headers()
        assert headers["X-API-Key"] == "abcd-efgh"
        assert headers["Origin"] == "https://mirror.example"

    def test_defaults(self, monkeypatch):
        """Test defaults, including validation off and a bad limit ignored."""
        for name in ("PYTHON_API_URL", "API_KEY", "JFIF2JPG_ORIGIN"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("JFIF2JPG_MAX_UPLOAD_BYTES", "not-a-number")

        settings = get_upstream_settings()
        assert settings.base_url == DEFAULT_UPSTREAM_URL
        assert settings.api_key == ""
        assert settings.request_headers()["X-API-Key"] == ""
        assert settings.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
        assert settings.validate_uploads is False

    @pytest.mark.parametrize("value, expected", [("false", False), ("0", False), ("yes", True), ("true", True), ("", False)])
    def test_validate_uploads_flag(self, monkeypatch, value, expected):
        """Test parsing of JFIF2JPG_VALIDATE_UPLOADS."""
        monkeypatch.setenv("JFIF2JPG_VALIDATE_UPLOADS", value)
        assert get_upstream_settings().validate_uploads is expected

    def test_repr_masks_credential(self, monkeypatch):
        """Test that repr never shows the full API key."""
        monkeypatch.setenv("API_KEY", "supersecretvalue")
        assert "supersecretvalue" not in repr(get_upstream_settings())


class TestClientSettings:
    """Test cases for upload client settings."""

    def test_proxy_url(self, monkeypatch):
        """Test the default and overridden proxy URL."""
        monkeypatch.delenv("JFIF2JPG_PROXY_URL", raising=False)
        assert get_proxy_url() == DEFAULT_PROXY_URL
        monkeypatch.setenv("JFIF2JPG_PROXY_URL", "http://proxy.example/api/convert")
        assert get_proxy_url() == "http://proxy.example/api/convert"

    def test_temp_dir(self, monkeypatch, tmp_path):
        """Test that JFIF2JPG_TEMP_DIR sets the temp directory."""
        monkeypatch.setenv("JFIF2JPG_TEMP_DIR", str(tmp_path))
        assert get_temp_dir() == tmp_path

    def test_http_timeout(self, monkeypatch):
        """Test that the read timeout is unset unless configured."""
        assert get_http_timeout() is None
        monkeypatch.setenv("JFIF2JPG_HTTP_TIMEOUT", "12.5")
        assert get_http_timeout() == 12.5


def test_mask_secret():
    """Test that only the key prefix is kept."""
    assert mask_secret("abcdefgh") == "abcd***"
    assert mask_secret("") == "<unset>"
    assert mask_secret(None) == "<unset>"


class TestLogging:
    """Test cases for logging configuration."""

    def test_level_from_string(self):
        """Test level name parsing and its fallback."""
        assert LogLevel.from_string("warn") == logging.WARNING
        assert LogLevel.from_string("unknown") == logging.INFO

    def test_level_from_environment(self, monkeypatch):
        """Test that LOG_LEVEL sets the level."""
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert LogConfig.get_log_level() == logging.DEBUG

    def test_quiet_under_pytest(self, monkeypatch):
        """Test the WARNING default while running tests."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("LOGLEVEL", raising=False)
        assert LogConfig.get_log_level() == logging.WARNING

    @pytest.mark.parametrize("value, expected", [
        ("json", LogConfig.JSON_FORMAT),
        ("dev", LogConfig.DEV_FORMAT),
        ("standard", LogConfig.DEFAULT_FORMAT),
    ])
    def test_format_from_environment(self, monkeypatch, value, expected):
        """Test that LOG_FORMAT selects the format string."""
        monkeypatch.setenv("LOG_FORMAT", value)
        assert LogConfig.get_log_format() == expected

    def test_setup_logging_with_file(self, tmp_path):
        """Test that setup_logging installs a rotating file handler."""
        log_file = tmp_path / "logs" / "jfif2jpg.log"
        root = logging.getLogger()
        previous_handlers = root.handlers[:]
        previous_level = root.level
        try:
            setup_logging("ERROR", log_to_file=True, log_file=log_file)
            assert root.level == logging.ERROR
            assert log_file.parent.is_dir()
            assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
                handler.close()
            for handler in previous_handlers:
                root.addHandler(handler)
            root.setLevel(previous_level)
            LoggerFactory.reset()


class TestHTTPClientFactory:
    """Test cases for the httpx client factory."""

    def test_timeouts(self, monkeypatch):
        """Test per-service timeouts and the optional read timeout."""
        timeout = build_timeout(ServiceType.UPSTREAM)
        assert timeout.read is None
        assert timeout.connect == 10.0
        assert timeout.write == 300.0

        monkeypatch.setenv("JFIF2JPG_HTTP_TIMEOUT", "30")
        assert build_timeout(ServiceType.PROXY).read == 30.0

    @pytest.mark.asyncio
    async def test_clients_are_tracked_and_closed(self):
        """Test that created clients are tracked and closed together."""
        factory = HTTPClientFactory()
        client = factory.create_client(ServiceType.PROXY)

        assert factory.get_client(ServiceType.PROXY) is client
        assert factory.get_client(ServiceType.UPSTREAM) is None

        await factory.close_all_clients()
        assert client.is_closed
        assert factory.get_client(ServiceType.PROXY) is None
