"""
Unit tests for TLS version parsing, ordering and negotiated-version mapping.
"""

import ssl

import pytest

from tlsbootstrap.errors import ConfigurationError
from tlsbootstrap.tls.versions import TLSVersion, UnrecognizedTLSVersion, from_negotiated


class TestTLSVersion:
    """Tests for the TLSVersion enum."""

    def test_ordering(self):
        assert TLSVersion.TLS1_0 < TLSVersion.TLS1_1 < TLSVersion.TLS1_2 < TLSVersion.TLS1_3
        assert TLSVersion.TLS1_3 >= TLSVersion.TLS1_2
        assert TLSVersion.TLS1_2 >= TLSVersion.TLS1_2
        assert not TLSVersion.TLS1_1 >= TLSVersion.TLS1_2
        assert max(TLSVersion) is TLSVersion.TLS1_3

    def test_labels(self):
        assert TLSVersion.TLS1_0.label == "TLS 1.0"
        assert TLSVersion.TLS1_3.label == "TLS 1.3"

    def test_ssl_versions(self):
        assert TLSVersion.TLS1_2.ssl_version == ssl.TLSVersion.TLSv1_2
        assert TLSVersion.TLS1_3.ssl_version == ssl.TLSVersion.TLSv1_3

    @pytest.mark.parametrize("spelling", ["TLS1.2", "tls1.2", "TLSv1.2", "TLS 1.2", "TLS1_2", "1.2"])
    def test_parse_spellings(self, spelling):
        assert TLSVersion.parse(spelling) is TLSVersion.TLS1_2

    def test_parse_member_passthrough(self):
        assert TLSVersion.parse(TLSVersion.TLS1_3) is TLSVersion.TLS1_3

    @pytest.mark.parametrize("value", ["SSL3", "TLS1.4", "TLS2", "", "latest"])
    def test_parse_rejects_unknown(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            TLSVersion.parse(value)

        assert exc_info.value.stage == "configuration"

    def test_parse_rejects_non_string(self):
        with pytest.raises(ConfigurationError):
            TLSVersion.parse(12)


class TestFromNegotiated:
    """Tests for mapping SSLSocket.version() strings."""

    @pytest.mark.parametrize("raw, expected", [
        ("TLSv1", TLSVersion.TLS1_0),
        ("TLSv1.1", TLSVersion.TLS1_1),
        ("TLSv1.2", TLSVersion.TLS1_2),
        ("TLSv1.3", TLSVersion.TLS1_3),
    ])
    def test_known_versions(self, raw, expected):
        assert from_negotiated(raw) is expected

    def test_plaintext_is_none(self):
        assert from_negotiated(None) is None

    def test_unknown_is_preserved(self):
        version = from_negotiated("SSLv3")

        assert version == UnrecognizedTLSVersion("SSLv3")
        assert version.raw_value == "SSLv3"
        assert version.label == "unrecognized TLS version (SSLv3)"
