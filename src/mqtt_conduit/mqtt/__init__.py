"""Channel-based bridge over an asynchronous MQTT client.

One-shot operations (connect, disconnect, publish, unsubscribe) return a
``ResultChannel`` that receives exactly one ``Token``. ``subscribe``
returns a ``Subscription`` channel that yields ``TopicDelivery`` values for
as long as the subscription lives.

Example Usage:
    from mqtt_conduit.mqtt import ConnectConfig, bridge, create_client

    client = create_client("ssl://broker.local:8883", "gateway-1")
    token = bridge.connect(
        client,
        ConnectConfig(ca_file="ca.pem", cert_file="client.pem", key_file="client.key"),
    ).result(timeout=10)

    deliveries = bridge.subscribe(client, "sensors/+", qos=1)
    for topic, message in deliveries:
        print(topic, message.payload)

Within asyncio, channels are awaitable:

    token = await bridge.publish(client, "sensors/temp", b"21.5")
    async for topic, message in deliveries:
        ...
"""

from mqtt_conduit.mqtt.config import ClientConfig, ConnectConfig, MQTTQoS
from mqtt_conduit.mqtt.payload import Message, TopicDelivery, to_bytes, to_message
from mqtt_conduit.mqtt.token import (
    Token,
    exception_of,
    granted_qos_of,
    is_success,
    message_id_of,
)
from mqtt_conduit.mqtt.channels import Channel, ResultChannel, Subscription
from mqtt_conduit.mqtt.options import ConnectOptions, build_options
from mqtt_conduit.mqtt.listeners import ChannelActionListener, SubscriptionListener
from mqtt_conduit.mqtt import bridge
from mqtt_conduit.mqtt.paho_client import (
    PahoAsyncClient,
    ServerAddress,
    create_client,
    create_client_from_config,
    parse_server_uri,
)
from mqtt_conduit.mqtt.client import ChannelClient

__all__ = [
    # Configuration
    "ClientConfig",
    "ConnectConfig",
    "MQTTQoS",
    # Messages
    "Message",
    "TopicDelivery",
    "to_bytes",
    "to_message",
    # Tokens
    "Token",
    "is_success",
    "exception_of",
    "granted_qos_of",
    "message_id_of",
    # Channels
    "Channel",
    "ResultChannel",
    "Subscription",
    # Options
    "ConnectOptions",
    "build_options",
    # Bridge
    "ChannelActionListener",
    "SubscriptionListener",
    "bridge",
    # Client
    "PahoAsyncClient",
    "ServerAddress",
    "create_client",
    "create_client_from_config",
    "parse_server_uri",
    "ChannelClient",
]
