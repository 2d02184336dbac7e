"""Build a TLS socket factory from PEM identity material.

The pipeline parses a CA certificate, a client certificate and its private
key (optionally password protected), then assembles an ``ssl.SSLContext``:

    CA certificate       -> trust store of the context (platform store otherwise)
    certificate + key    -> client identity presented during the handshake

Python's ``ssl`` module only loads client identities from files, so the key
and certificate are written to a private temporary key store encrypted with
a one-time password. The store is removed before ``build_socket_factory``
returns and the password never leaves this module.
"""

import os
import secrets
import socket
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa

from mqtt_conduit.errors import (
    CertificateParseError,
    KeyDecryptionError,
    KeyMismatchError,
    KeyParseError,
    TLSMaterialError,
    UnsupportedKeyAlgorithmError,
)
from mqtt_conduit.logging import get_logger
from mqtt_conduit.tls.pem import PemSource, first_block, read_source

logger = get_logger(__name__)

PrivateKey = Union[
    rsa.RSAPrivateKey,
    ec.EllipticCurvePrivateKey,
    dsa.DSAPrivateKey,
    ed25519.Ed25519PrivateKey,
    ed448.Ed448PrivateKey,
]

_SIGNING_KEY_TYPES = (
    rsa.RSAPrivateKey,
    ec.EllipticCurvePrivateKey,
    dsa.DSAPrivateKey,
    ed25519.Ed25519PrivateKey,
    ed448.Ed448PrivateKey,
)

_CERTIFICATE_LABELS = ("CERTIFICATE", "X509 CERTIFICATE")


@dataclass(frozen=True)
class SocketFactory:
    """TLS socket factory handed to the MQTT transport.

    Attributes:
        context: Client-side TLS context
        trusts_custom_ca: Trust store holds the supplied CA instead of the platform store
        presents_client_certificate: A client identity is loaded for mutual TLS
    """

    context: ssl.SSLContext
    trusts_custom_ca: bool = False
    presents_client_certificate: bool = False

    def wrap_socket(
        self, sock: socket.socket, server_hostname: Optional[str] = None
    ) -> ssl.SSLSocket:
        return self.context.wrap_socket(sock, server_hostname=server_hostname)


def load_certificate(source: PemSource, description: str = "certificate") -> x509.Certificate:
    """Parse exactly one PEM certificate.

    Args:
        source: Path or readable binary handle
        description: Used in error messages

    Raises:
        CertificateParseError: If the source holds no certificate or it is malformed
    """
    data = read_source(source)
    try:
        block = first_block(data)
    except ValueError:
        raise CertificateParseError(f"No PEM data found in {description}") from None
    if block.label not in _CERTIFICATE_LABELS:
        raise CertificateParseError(f"Expected a certificate in {description}, found {block.label}")
    try:
        return x509.load_pem_x509_certificate(block.data)
    except ValueError as e:
        raise CertificateParseError(f"Malformed {description}: {e}") from e


def load_private_key(
    source: PemSource,
    password: Optional[Union[str, bytes]] = None,
) -> PrivateKey:
    """Parse one PEM private key, decrypting it when it is encrypted.

    The password is only used for encrypted keys and ignored otherwise.

    Raises:
        KeyDecryptionError: Encrypted key with a missing or wrong password
        KeyParseError: Malformed key data
        UnsupportedKeyAlgorithmError: Key type unusable for TLS client authentication
    """
    data = read_source(source)
    try:
        block = first_block(data)
    except ValueError:
        raise KeyParseError("No PEM data found in private key") from None

    if block.encrypted:
        if password is None:
            raise KeyDecryptionError("Private key is encrypted but no key password was given")
        secret = password.encode("utf-8") if isinstance(password, str) else password
        try:
            key = serialization.load_pem_private_key(block.data, password=secret)
        except UnsupportedAlgorithm as e:
            raise UnsupportedKeyAlgorithmError(f"Unsupported private key encryption: {e}") from e
        except (TypeError, ValueError) as e:
            raise KeyDecryptionError("Could not decrypt private key, wrong password?") from e
    else:
        try:
            key = serialization.load_pem_private_key(block.data, password=None)
        except UnsupportedAlgorithm as e:
            raise UnsupportedKeyAlgorithmError(f"Unsupported private key algorithm: {e}") from e
        except (TypeError, ValueError) as e:
            raise KeyParseError(f"Malformed private key ({block.label}): {e}") from e

    if not isinstance(key, _SIGNING_KEY_TYPES):
        raise UnsupportedKeyAlgorithmError(
            f"{type(key).__name__} cannot be used for TLS client authentication"
        )
    return key


def _public_der(key: object) -> bytes:
    return key.public_bytes(  # type: ignore[attr-defined]
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _check_key_matches(certificate: x509.Certificate, key: PrivateKey) -> None:
    if _public_der(certificate.public_key()) != _public_der(key.public_key()):
        raise KeyMismatchError("Private key does not match the client certificate")


def _load_client_identity(
    context: ssl.SSLContext,
    certificate: x509.Certificate,
    key: PrivateKey,
) -> None:
    """Load certificate and key into ``context`` through an ephemeral key store."""
    store_password = secrets.token_urlsafe(32)
    store_pem = certificate.public_bytes(serialization.Encoding.PEM) + key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.BestAvailableEncryption(store_password.encode("ascii")),
    )

    with tempfile.TemporaryDirectory(prefix="mqtt-conduit-") as store_dir:
        store_path = Path(store_dir) / "identity.pem"
        fd = os.open(store_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as store:
            store.write(store_pem)
        try:
            context.load_cert_chain(certfile=str(store_path), password=store_password)
        except ssl.SSLError as e:
            raise TLSMaterialError(f"TLS engine rejected the client identity: {e}") from e


def build_socket_factory(
    ca_file: Optional[PemSource] = None,
    cert_file: Optional[PemSource] = None,
    key_file: Optional[PemSource] = None,
    key_password: Optional[Union[str, bytes]] = None,
) -> Optional[SocketFactory]:
    """Build a TLS socket factory from PEM material.

    Args:
        ca_file: CA certificate used as the only trust anchor
        cert_file: Client certificate for mutual TLS
        key_file: Private key of the client certificate
        key_password: Password of an encrypted private key

    Returns:
        SocketFactory, or None when no TLS material was supplied

    Raises:
        CertificateParseError: Malformed CA or client certificate
        KeyDecryptionError: Encrypted key with a missing or wrong password
        KeyParseError: Malformed private key
        UnsupportedKeyAlgorithmError: Key type unusable for TLS client authentication
        KeyMismatchError: Key does not belong to the client certificate
    """
    if ca_file is None and cert_file is None and key_file is None:
        return None

    ca_cert = load_certificate(ca_file, "CA certificate") if ca_file is not None else None
    client_cert = load_certificate(cert_file, "client certificate") if cert_file is not None else None

    private_key: Optional[PrivateKey] = None
    if client_cert is not None:
        if key_file is None:
            logger.warning("Client certificate given without a private key; client authentication disabled")
        else:
            private_key = load_private_key(key_file, key_password)
            _check_key_matches(client_cert, private_key)
    elif key_file is not None:
        logger.warning("Private key given without a client certificate; ignoring it")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    if ca_cert is not None:
        context.load_verify_locations(
            cadata=ca_cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
        )
    else:
        context.load_default_certs(ssl.Purpose.SERVER_AUTH)

    if client_cert is not None and private_key is not None:
        _load_client_identity(context, client_cert, private_key)

    logger.debug(
        f"Built TLS socket factory (custom CA: {ca_cert is not None}, "
        f"client certificate: {private_key is not None})"
    )
    return SocketFactory(
        context=context,
        trusts_custom_ca=ca_cert is not None,
        presents_client_certificate=private_key is not None,
    )
