"""
Unit tests for ServerConfig and the startup error hierarchy.
"""

import pytest

from tlsbootstrap.config import ServerConfig
from tlsbootstrap.errors import BindError, CertificateLoadError, ConfigurationError, ServerError


class TestServerConfig:
    """Tests for ServerConfig defaults and validation."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.address == ("127.0.0.1", 3000)
        assert config.min_tls_version == "TLS1.2"
        assert config.timeout is None
        config.validate()

    @pytest.mark.parametrize("changes", [
        {"port": -1},
        {"port": 70000},
        {"cert_file": ""},
        {"key_file": ""},
        {"min_tls_version": "SSL3"},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"buffer_size": 512},
        {"timeout": 0},
        {"keep_alive_timeout": 0},
        {"log_level": "CHATTY"},
    ])
    def test_validate_rejects(self, changes):
        config = ServerConfig(**changes)

        with pytest.raises(ConfigurationError):
            config.validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()


class TestFromEnv:
    """Tests for ServerConfig.from_env()."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("TLS_HOST", "0.0.0.0")
        monkeypatch.setenv("TLS_PORT", "8443")
        monkeypatch.setenv("TLS_CERT_FILE", "/etc/tls/server.crt")
        monkeypatch.setenv("TLS_KEY_FILE", "/etc/tls/server.key")
        monkeypatch.setenv("TLS_MIN_VERSION", "TLS1.3")
        monkeypatch.setenv("TLS_WORKERS", "2")
        monkeypatch.setenv("TLS_TIMEOUT", "2.5")
        monkeypatch.setenv("TLS_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.address == ("0.0.0.0", 8443)
        assert config.cert_file == "/etc/tls/server.crt"
        assert config.key_file == "/etc/tls/server.key"
        assert config.min_tls_version == "TLS1.3"
        assert (config.min_workers, config.max_workers) == (2, 2)
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"
        config.validate()

    def test_defaults_without_environment(self, monkeypatch):
        for name in ("TLS_HOST", "TLS_PORT", "TLS_MIN_VERSION", "TLS_TIMEOUT", "TLS_WORKERS"):
            monkeypatch.delenv(name, raising=False)

        config = ServerConfig.from_env()

        assert config.address == ("127.0.0.1", 3000)
        assert config.timeout is None

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("TLS_PORT", "https")

        with pytest.raises(ConfigurationError):
            ServerConfig.from_env()


class TestErrors:
    """Tests for the startup error hierarchy."""

    def test_stage_in_message(self):
        assert str(CertificateLoadError("file not found: x.pem")) == "certificate failed: file not found: x.pem"
        assert str(BindError("address in use")) == "bind failed: address in use"
        assert str(ConfigurationError("bad port")) == "configuration failed: bad port"

    def test_hierarchy(self):
        for error in (ConfigurationError, CertificateLoadError, BindError):
            assert issubclass(error, ServerError)
        assert issubclass(ConfigurationError, ValueError)

    def test_bind_error_keeps_address(self):
        error = BindError("in use", address=("127.0.0.1", 3000))
        assert error.address == ("127.0.0.1", 3000)
        assert error.message == "in use"
