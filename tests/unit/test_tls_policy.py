"""
Unit tests for TLSPolicy and configure().
"""

import dataclasses
import ssl

import pytest

from tlsbootstrap.errors import ConfigurationError
from tlsbootstrap.tls.policy import DEFAULT_MIN_VERSION, TLSPolicy, configure
from tlsbootstrap.tls.versions import TLSVersion, UnrecognizedTLSVersion


class TestConfigure:
    """Tests for configure()."""

    def test_default_is_tls12(self):
        assert configure().min_version is TLSVersion.TLS1_2
        assert DEFAULT_MIN_VERSION is TLSVersion.TLS1_2

    def test_accepts_string(self):
        assert configure("TLS1.3").min_version is TLSVersion.TLS1_3

    def test_accepts_member(self):
        assert configure(TLSVersion.TLS1_1).min_version is TLSVersion.TLS1_1

    def test_rejects_unknown_version(self):
        with pytest.raises(ConfigurationError):
            configure("TLS9.9")

    def test_policy_is_immutable(self):
        policy = configure("TLS1.2")

        with pytest.raises(dataclasses.FrozenInstanceError):
            policy.min_version = TLSVersion.TLS1_0


class TestTLSPolicy:
    """Tests for TLSPolicy."""

    def test_accepts_at_and_above_floor(self):
        policy = TLSPolicy(TLSVersion.TLS1_2)

        assert policy.accepts(TLSVersion.TLS1_2)
        assert policy.accepts(TLSVersion.TLS1_3)

    def test_rejects_below_floor(self):
        policy = TLSPolicy(TLSVersion.TLS1_3)

        assert not policy.accepts(TLSVersion.TLS1_2)
        assert not policy.accepts(TLSVersion.TLS1_0)

    def test_rejects_plaintext_and_unrecognized(self):
        policy = TLSPolicy(TLSVersion.TLS1_0)

        assert not policy.accepts(None)
        assert not policy.accepts(UnrecognizedTLSVersion("SSLv3"))

    def test_apply_sets_minimum_version(self):
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        returned = TLSPolicy(TLSVersion.TLS1_3).apply(context)

        assert returned is context
        assert context.minimum_version == ssl.TLSVersion.TLSv1_3

    def test_str(self):
        assert str(TLSPolicy(TLSVersion.TLS1_2)) == ">= TLS 1.2"
