"""
=============================================================================
TLS PROTOCOL VERSIONS
=============================================================================

A closed enumeration of the TLS versions this server knows about, with a
total mapping to human-readable labels and to the ``ssl`` module's own
constants.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  TLSVersion    label        ssl.TLSVersion     SSLSocket.version()  │
    ├─────────────────────────────────────────────────────────────────────┤
    │  TLS1_0        "TLS 1.0"    TLSv1              "TLSv1"              │
    │  TLS1_1        "TLS 1.1"    TLSv1_1            "TLSv1.1"            │
    │  TLS1_2        "TLS 1.2"    TLSv1_2            "TLSv1.2"            │
    │  TLS1_3        "TLS 1.3"    TLSv1_3            "TLSv1.3"            │
    └─────────────────────────────────────────────────────────────────────┘

A negotiated version string that is not in this table (an old "SSLv3", or
a future protocol) becomes an UnrecognizedTLSVersion carrying the raw
value. There is no catch-all "unknown" label.

=============================================================================
"""

import ssl
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Optional, Union

from ..errors import ConfigurationError


@total_ordering
class TLSVersion(Enum):
    """
    Known TLS protocol versions, ordered oldest to newest.

        >>> TLSVersion.TLS1_2 < TLSVersion.TLS1_3
        True
        >>> TLSVersion.TLS1_3.label
        'TLS 1.3'
    """

    TLS1_0 = "TLS1.0"
    TLS1_1 = "TLS1.1"
    TLS1_2 = "TLS1.2"
    TLS1_3 = "TLS1.3"

    @property
    def label(self) -> str:
        """Human-readable name used in log lines."""
        return _LABELS[self]

    @property
    def ssl_version(self) -> ssl.TLSVersion:
        """The matching ``ssl.TLSVersion`` for SSLContext.minimum_version."""
        return _SSL_VERSIONS[self]

    def __lt__(self, other):
        if not isinstance(other, TLSVersion):
            return NotImplemented
        return _ORDER.index(self) < _ORDER.index(other)

    @classmethod
    def parse(cls, value: Union["TLSVersion", str]) -> "TLSVersion":
        """
        Parse a user-supplied version into a TLSVersion.

        Accepted spellings are case-insensitive:
            "TLS1.2", "TLSv1.2", "TLS 1.2", "TLS1_2", "1.2"

        Raises:
            ConfigurationError: If the value names no known TLS version.
        """
        if isinstance(value, TLSVersion):
            return value
        if not isinstance(value, str):
            raise ConfigurationError(
                f"TLS version must be a string or TLSVersion, got {type(value).__name__}"
            )

        key = value.strip().upper().replace(" ", "").replace("_", ".")
        if key.startswith("TLSV"):
            key = "TLS" + key[4:]
        elif not key.startswith("TLS"):
            key = "TLS" + key

        for version in cls:
            if version.value == key:
                return version

        allowed = ", ".join(v.value for v in cls)
        raise ConfigurationError(f"Unrecognized TLS version {value!r} (expected one of: {allowed})")


@dataclass(frozen=True)
class UnrecognizedTLSVersion:
    """A negotiated version string outside the TLSVersion table."""

    raw_value: str

    @property
    def label(self) -> str:
        return f"unrecognized TLS version ({self.raw_value})"


NegotiatedVersion = Union[TLSVersion, UnrecognizedTLSVersion]


_ORDER = [TLSVersion.TLS1_0, TLSVersion.TLS1_1, TLSVersion.TLS1_2, TLSVersion.TLS1_3]

_LABELS = {
    TLSVersion.TLS1_0: "TLS 1.0",
    TLSVersion.TLS1_1: "TLS 1.1",
    TLSVersion.TLS1_2: "TLS 1.2",
    TLSVersion.TLS1_3: "TLS 1.3",
}

_SSL_VERSIONS = {
    TLSVersion.TLS1_0: ssl.TLSVersion.TLSv1,
    TLSVersion.TLS1_1: ssl.TLSVersion.TLSv1_1,
    TLSVersion.TLS1_2: ssl.TLSVersion.TLSv1_2,
    TLSVersion.TLS1_3: ssl.TLSVersion.TLSv1_3,
}

# Strings returned by ssl.SSLSocket.version()
_NEGOTIATED = {
    "TLSv1": TLSVersion.TLS1_0,
    "TLSv1.1": TLSVersion.TLS1_1,
    "TLSv1.2": TLSVersion.TLS1_2,
    "TLSv1.3": TLSVersion.TLS1_3,
}


def from_negotiated(raw: Optional[str]) -> Optional[NegotiatedVersion]:
    """
    Map the transport's negotiated version string to a version value.

    Args:
        raw: Result of ``SSLSocket.version()``, or None for a plaintext
             connection.

    Returns:
        None for plaintext, a TLSVersion for known versions, otherwise an
        UnrecognizedTLSVersion holding the raw string.
    """
    if raw is None:
        return None
    version = _NEGOTIATED.get(raw)
    if version is None:
        return UnrecognizedTLSVersion(raw)
    return version
