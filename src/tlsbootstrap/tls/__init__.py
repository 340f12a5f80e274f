"""
=============================================================================
TLS LAYER
=============================================================================

Everything the server needs to speak TLS:

    versions.py   TLSVersion (closed enum) + UnrecognizedTLSVersion
    policy.py     TLSPolicy + configure()    minimum version floor
    identity.py   certificate/key loading + SSLContext construction

=============================================================================
"""

from .versions import TLSVersion, UnrecognizedTLSVersion, NegotiatedVersion, from_negotiated
from .policy import TLSPolicy, configure, DEFAULT_MIN_VERSION
from .identity import CertificateIdentity, load_identity, create_server_context

__all__ = [
    "TLSVersion",
    "UnrecognizedTLSVersion",
    "NegotiatedVersion",
    "from_negotiated",
    "TLSPolicy",
    "configure",
    "DEFAULT_MIN_VERSION",
    "CertificateIdentity",
    "load_identity",
    "create_server_context",
]
