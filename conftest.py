"""Shared fixtures: TLS material generated at test time."""

import datetime
from dataclasses import dataclass
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, x25519
from cryptography.x509.oid import NameOID

KEY_PASSWORD = "correct horse"


@dataclass
class TLSMaterial:
    """Paths of a CA, a client identity signed by it and assorted keys."""

    ca_file: Path
    cert_file: Path
    key_file: Path
    pkcs8_encrypted_key_file: Path
    openssl_encrypted_key_file: Path
    other_key_file: Path
    x25519_key_file: Path
    key_password: str = KEY_PASSWORD


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def _certificate(
    subject: str,
    issuer: str,
    public_key: ec.EllipticCurvePublicKey,
    signing_key: ec.EllipticCurvePrivateKey,
    ca: bool,
) -> x509.Certificate:
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(signing_key, hashes.SHA256())
    )


def _key_pem(key, fmt=serialization.PrivateFormat.PKCS8, password=None) -> bytes:
    encryption = (
        serialization.BestAvailableEncryption(password.encode("utf-8"))
        if password
        else serialization.NoEncryption()
    )
    return key.private_bytes(serialization.Encoding.PEM, fmt, encryption)


@pytest.fixture(scope="session")
def tls_material(tmp_path_factory: pytest.TempPathFactory) -> TLSMaterial:
    """CA certificate, client certificate and keys written as PEM files."""
    base = tmp_path_factory.mktemp("tls")

    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_cert = _certificate("Test CA", "Test CA", ca_key.public_key(), ca_key, ca=True)

    client_key = ec.generate_private_key(ec.SECP256R1())
    client_cert = _certificate("sensor-hub", "Test CA", client_key.public_key(), ca_key, ca=False)

    other_key = ec.generate_private_key(ec.SECP256R1())

    material = TLSMaterial(
        ca_file=base / "ca.pem",
        cert_file=base / "client.pem",
        key_file=base / "client.key",
        pkcs8_encrypted_key_file=base / "client-pkcs8-encrypted.key",
        openssl_encrypted_key_file=base / "client-openssl-encrypted.key",
        other_key_file=base / "other.key",
        x25519_key_file=base / "x25519.key",
    )
    material.ca_file.write_bytes(ca_cert.public_bytes(serialization.Encoding.PEM))
    material.cert_file.write_bytes(client_cert.public_bytes(serialization.Encoding.PEM))
    material.key_file.write_bytes(_key_pem(client_key))
    material.pkcs8_encrypted_key_file.write_bytes(_key_pem(client_key, password=KEY_PASSWORD))
    material.openssl_encrypted_key_file.write_bytes(
        _key_pem(client_key, serialization.PrivateFormat.TraditionalOpenSSL, KEY_PASSWORD)
    )
    material.other_key_file.write_bytes(_key_pem(other_key))
    material.x25519_key_file.write_bytes(_key_pem(x25519.X25519PrivateKey.generate()))
    return material
