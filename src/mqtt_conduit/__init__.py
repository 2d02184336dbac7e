"""mqtt-conduit: channel-based results for asynchronous MQTT operations.

Packages:
    mqtt: payload coercion, tokens, channels, bridge and the paho-mqtt client
    tls: PEM identity material to TLS socket factory
    interfaces: protocols between the bridge and the MQTT client
    logging: thread-aware logging setup
"""

__version__ = "0.1.0"

from mqtt_conduit.errors import (
    CertificateParseError,
    ChannelClosedError,
    ConduitError,
    ConnectionLostError,
    KeyDecryptionError,
    KeyMismatchError,
    KeyParseError,
    OperationFailedError,
    SubscriptionRejectedError,
    TLSMaterialError,
    UnsupportedKeyAlgorithmError,
    UnsupportedPayloadTypeError,
)
from mqtt_conduit.mqtt import (
    Channel,
    ChannelClient,
    ClientConfig,
    ConnectConfig,
    ConnectOptions,
    Message,
    MQTTQoS,
    ResultChannel,
    Subscription,
    Token,
    TopicDelivery,
    bridge,
    build_options,
    create_client,
)
from mqtt_conduit.mqtt.bridge import connect, disconnect, publish, subscribe, unsubscribe
from mqtt_conduit.tls import SocketFactory, build_socket_factory

__all__ = [
    "__version__",
    # Errors
    "ConduitError",
    "UnsupportedPayloadTypeError",
    "OperationFailedError",
    "ConnectionLostError",
    "SubscriptionRejectedError",
    "ChannelClosedError",
    "TLSMaterialError",
    "CertificateParseError",
    "KeyParseError",
    "KeyDecryptionError",
    "UnsupportedKeyAlgorithmError",
    "KeyMismatchError",
    # Bridge
    "connect",
    "disconnect",
    "publish",
    "subscribe",
    "unsubscribe",
    "bridge",
    # Types
    "Channel",
    "ResultChannel",
    "Subscription",
    "Token",
    "Message",
    "TopicDelivery",
    "MQTTQoS",
    # Configuration
    "ClientConfig",
    "ConnectConfig",
    "ConnectOptions",
    "build_options",
    # Clients
    "ChannelClient",
    "create_client",
    # TLS
    "SocketFactory",
    "build_socket_factory",
]
