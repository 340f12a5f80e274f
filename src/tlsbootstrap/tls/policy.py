"""
=============================================================================
MINIMUM TLS VERSION POLICY
=============================================================================

The policy is a single immutable value: the oldest TLS version the server
will negotiate. It is built once at startup by configure() and shared,
read-only, by every worker thread.

    configure("TLS1.2")
        │
        ▼
    TLSPolicy(min_version=TLS1_2)
        │
        ├──► apply(context)    SSLContext.minimum_version = TLSv1_2
        │                      (the transport refuses older handshakes)
        │
        └──► accepts(version)  post-handshake floor check on each
                               connection, so enforcement is verified
                               rather than assumed

The platform may impose a higher floor than the policy (many OpenSSL
builds refuse TLS 1.0/1.1 at their default security level). The policy
never lowers that floor.

=============================================================================
"""

import ssl
from dataclasses import dataclass
from typing import Optional, Union

from .versions import TLSVersion, NegotiatedVersion, UnrecognizedTLSVersion


DEFAULT_MIN_VERSION = TLSVersion.TLS1_2


@dataclass(frozen=True)
class TLSPolicy:
    """
    Immutable minimum-TLS-version policy.

    Attributes:
        min_version: Oldest version a handshake may negotiate.
    """

    min_version: TLSVersion = DEFAULT_MIN_VERSION

    def apply(self, context: ssl.SSLContext) -> ssl.SSLContext:
        """Set the version floor on a server SSLContext."""
        context.minimum_version = self.min_version.ssl_version
        return context

    def accepts(self, negotiated: Optional[NegotiatedVersion]) -> bool:
        """
        Check a negotiated version against the floor.

        Plaintext (None) and unrecognized versions are not accepted. An
        unrecognized version means the transport negotiated something this
        server cannot vouch for.
        """
        if negotiated is None or isinstance(negotiated, UnrecognizedTLSVersion):
            return False
        return negotiated >= self.min_version

    def __str__(self) -> str:
        return f">= {self.min_version.label}"


def configure(min_tls_version: Union[TLSVersion, str] = DEFAULT_MIN_VERSION) -> TLSPolicy:
    """
    Build the TLS policy.

    Args:
        min_tls_version: A TLSVersion, or a spelling such as "TLS1.2",
                         "TLSv1.3" or "1.2".

    Returns:
        A frozen TLSPolicy.

    Raises:
        ConfigurationError: If the version is not one of the four known
                            TLS versions.
    """
    return TLSPolicy(min_version=TLSVersion.parse(min_tls_version))
