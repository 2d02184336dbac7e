"""MQTT configuration settings."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional


class MQTTQoS(IntEnum):
    """MQTT Quality of Service levels."""

    AT_MOST_ONCE = 0  # Fire and forget
    AT_LEAST_ONCE = 1  # May be delivered more than once
    EXACTLY_ONCE = 2


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


@dataclass
class ClientConfig:
    """Identity of the underlying MQTT client.

    Attributes:
        server_uri: Broker URI, e.g. ``tcp://localhost:1883`` or ``ssl://broker:8883``
        client_id: Client identifier (auto-generated if None)
        clean_session: Whether to start a clean session
    """

    server_uri: str = field(
        default_factory=lambda: os.getenv("MQTT_SERVER_URI", "tcp://localhost:1883")
    )
    client_id: Optional[str] = field(default_factory=lambda: os.getenv("MQTT_CLIENT_ID"))
    clean_session: bool = True

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create configuration from environment variables.

        Environment variables:
            MQTT_SERVER_URI: Broker URI (default: tcp://localhost:1883)
            MQTT_CLIENT_ID: Client ID (default: auto-generated)
        """
        return cls()


@dataclass
class ConnectConfig:
    """Flat configuration surface of a connect call.

    Every field is optional; fields left as None keep the underlying
    client's defaults.

    Attributes:
        timeout: Connection timeout in seconds
        keep_alive: Keep-alive interval in seconds
        ca_file: CA certificate (PEM) trusted for the broker
        cert_file: Client certificate (PEM) for mutual TLS
        key_file: Client private key (PEM), possibly encrypted
        key_password: Password of an encrypted ``key_file``
        username: Username for broker authentication
        password: Password for broker authentication
        ssl_properties: Raw TLS properties passed to the transport
    """

    timeout: Optional[float] = None
    keep_alive: Optional[int] = None
    ca_file: Optional[str] = None
    cert_file: Optional[str] = None
    key_file: Optional[str] = None
    key_password: Optional[str] = field(default=None, repr=False)
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    ssl_properties: Optional[Mapping[str, str]] = None

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {self.timeout}")
        if self.keep_alive is not None and self.keep_alive < 0:
            raise ValueError(f"keep_alive must be non-negative, got {self.keep_alive}")
        if self.key_password is not None and self.key_file is None:
            raise ValueError("key_password given without key_file")
        if self.ssl_properties is not None:
            self.ssl_properties = {str(k): str(v) for k, v in self.ssl_properties.items()}

    @property
    def uses_tls_material(self) -> bool:
        return any(f is not None for f in (self.ca_file, self.cert_file, self.key_file))

    @classmethod
    def from_env(cls) -> "ConnectConfig":
        """Create configuration from environment variables.

        Environment variables:
            MQTT_TIMEOUT: Connection timeout in seconds
            MQTT_KEEPALIVE: Keep-alive interval in seconds
            MQTT_CA_FILE: CA certificate path
            MQTT_CERT_FILE: Client certificate path
            MQTT_KEY_FILE: Client private key path
            MQTT_KEY_PASSWORD: Private key password
            MQTT_USERNAME: Authentication username
            MQTT_PASSWORD: Authentication password

        Returns:
            ConnectConfig: Configuration instance
        """
        return cls(
            timeout=_env_float("MQTT_TIMEOUT"),
            keep_alive=_env_int("MQTT_KEEPALIVE"),
            ca_file=os.getenv("MQTT_CA_FILE"),
            cert_file=os.getenv("MQTT_CERT_FILE"),
            key_file=os.getenv("MQTT_KEY_FILE"),
            key_password=os.getenv("MQTT_KEY_PASSWORD"),
            username=os.getenv("MQTT_USERNAME"),
            password=os.getenv("MQTT_PASSWORD"),
        )
