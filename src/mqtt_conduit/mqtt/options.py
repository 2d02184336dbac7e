"""Connection options derived from a ``ConnectConfig``."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from mqtt_conduit.mqtt.config import ConnectConfig
from mqtt_conduit.tls import SocketFactory, build_socket_factory


@dataclass(frozen=True)
class ConnectOptions:
    """Options consumed by a single connect operation.

    None means "leave the underlying client's default alone".
    """

    connection_timeout: Optional[float] = None
    keep_alive_interval: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    socket_factory: Optional[SocketFactory] = None
    ssl_properties: Optional[Mapping[str, str]] = None


def build_options(config: ConnectConfig) -> ConnectOptions:
    """Turn a ``ConnectConfig`` into ``ConnectOptions``.

    TLS material is parsed here, so malformed certificates or a wrong key
    password raise before any connect is issued.

    Raises:
        TLSMaterialError: If the TLS material cannot be used
    """
    socket_factory = None
    if config.uses_tls_material:
        socket_factory = build_socket_factory(
            ca_file=config.ca_file,
            cert_file=config.cert_file,
            key_file=config.key_file,
            key_password=config.key_password,
        )

    ssl_properties = None
    if config.ssl_properties is not None:
        ssl_properties = MappingProxyType(dict(config.ssl_properties))

    return ConnectOptions(
        connection_timeout=config.timeout,
        keep_alive_interval=config.keep_alive,
        username=config.username,
        password=config.password,
        socket_factory=socket_factory,
        ssl_properties=ssl_properties,
    )
