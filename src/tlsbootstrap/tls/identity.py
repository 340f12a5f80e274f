"""
=============================================================================
CERTIFICATE IDENTITY
=============================================================================

Loads the server's certificate and private key and turns them, together
with the TLS policy, into the SSLContext every connection is wrapped with.

    cert.pem ──┐
               ├──► load_identity() ──► CertificateIdentity
    key.pem  ──┘                               │
                                               ▼
                   TLSPolicy ──────► create_server_context()
                                               │
                                               ▼
                                    ssl.SSLContext (server side)

Both files must be PEM: a certificate (chain) and an UNENCRYPTED private
key. Anything that stops the pair from loading raises
CertificateLoadError, before any listening socket exists.

=============================================================================
"""

import logging
import os
import ssl
from dataclasses import dataclass, field

from ..errors import CertificateLoadError
from .policy import TLSPolicy


logger = logging.getLogger(__name__)

PEM_CERT_MARKER = b"-----BEGIN CERTIFICATE-----"
PEM_KEY_MARKER = b"PRIVATE KEY-----"
PEM_ENCRYPTED_MARKER = b"ENCRYPTED"

# Offered via ALPN. Only HTTP/1.x is spoken on the wire.
ALPN_PROTOCOLS = ["http/1.1"]


@dataclass(frozen=True)
class CertificateIdentity:
    """
    A certificate/key pair read from disk.

    The PEM bytes are kept so the pair is read exactly once; the
    SSLContext is built from the same files after they passed these
    checks.
    """

    cert_path: str
    key_path: str
    cert_pem: bytes = field(repr=False, default=b"")
    key_pem: bytes = field(repr=False, default=b"")


def _read_pem(path: str, what: str, cert_path: str, key_path: str) -> bytes:
    if not os.path.isfile(path):
        raise CertificateLoadError(f"{what} file not found: {path}", cert_path, key_path)
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise CertificateLoadError(
            f"cannot read {what} file {path}: {e.strerror or e}", cert_path, key_path
        ) from e


def load_identity(cert_path: str, key_path: str) -> CertificateIdentity:
    """
    Read and sanity-check the certificate and key files.

    Raises:
        CertificateLoadError: If either file is missing, unreadable, not
                              PEM, or the key is encrypted.
    """
    cert_pem = _read_pem(cert_path, "certificate", cert_path, key_path)
    key_pem = _read_pem(key_path, "private key", cert_path, key_path)

    if PEM_CERT_MARKER not in cert_pem:
        raise CertificateLoadError(
            f"{cert_path} does not contain a PEM certificate", cert_path, key_path
        )
    if PEM_KEY_MARKER not in key_pem:
        raise CertificateLoadError(
            f"{key_path} does not contain a PEM private key", cert_path, key_path
        )
    if PEM_ENCRYPTED_MARKER in key_pem.split(b"\n", 1)[0] or b"Proc-Type: 4,ENCRYPTED" in key_pem:
        raise CertificateLoadError(
            f"{key_path} is encrypted; an unencrypted key is required", cert_path, key_path
        )

    return CertificateIdentity(
        cert_path=cert_path,
        key_path=key_path,
        cert_pem=cert_pem,
        key_pem=key_pem,
    )


def create_server_context(identity: CertificateIdentity, policy: TLSPolicy) -> ssl.SSLContext:
    """
    Build the server-side SSLContext for an identity and policy.

    Raises:
        CertificateLoadError: If OpenSSL rejects the pair (corrupt PEM,
                              key does not match certificate).
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    policy.apply(context)

    try:
        # A password callback that returns nothing makes an encrypted key
        # fail here instead of prompting on the terminal.
        context.load_cert_chain(
            certfile=identity.cert_path,
            keyfile=identity.key_path,
            password=lambda: b"",
        )
    except ssl.SSLError as e:
        raise CertificateLoadError(
            f"invalid certificate/key pair ({identity.cert_path}, {identity.key_path}): "
            f"{e.reason or e}",
            identity.cert_path,
            identity.key_path,
        ) from e
    except OSError as e:
        raise CertificateLoadError(
            f"cannot load certificate/key pair: {e}",
            identity.cert_path,
            identity.key_path,
        ) from e

    try:
        context.set_alpn_protocols(ALPN_PROTOCOLS)
    except NotImplementedError:
        logger.debug("ALPN not supported by this OpenSSL build")

    logger.debug(f"TLS context ready ({policy}, cert={identity.cert_path})")
    return context
