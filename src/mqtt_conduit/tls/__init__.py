"""TLS identity material for MQTT connections.

Example Usage:
    from mqtt_conduit.tls import build_socket_factory

    factory = build_socket_factory(
        ca_file="certs/ca.pem",
        cert_file="certs/client.pem",
        key_file="certs/client.key",
        key_password="secret",
    )
"""

from mqtt_conduit.tls.pem import PemBlock, PemSource, first_block, read_source
from mqtt_conduit.tls.identity import (
    SocketFactory,
    build_socket_factory,
    load_certificate,
    load_private_key,
)
from mqtt_conduit.tls.properties import apply_ssl_properties

__all__ = [
    # PEM
    "PemBlock",
    "PemSource",
    "first_block",
    "read_source",
    # Identity
    "SocketFactory",
    "build_socket_factory",
    "load_certificate",
    "load_private_key",
    # Properties
    "apply_ssl_properties",
]
