"""Channel-returning wrappers around an asynchronous MQTT client.

Every one-shot operation returns a ``ResultChannel`` that receives exactly
one ``Token``, on success and on failure alike; callers inspect
``token.success`` instead of catching exceptions. ``subscribe`` returns a
``Subscription`` channel of ``TopicDelivery`` values instead.

Example Usage:
    from mqtt_conduit.mqtt import bridge, create_client, ConnectConfig

    client = create_client("ssl://broker:8883", "sensor-hub")
    token = bridge.connect(client, ConnectConfig(ca_file="ca.pem")).result(10)
    if not token.success:
        raise token.exception

    readings = bridge.subscribe(client, "sensors/+", qos=1)
    bridge.publish(client, "sensors/temp", {"payload": b"21.5", "qos": 1})
    for topic, message in readings:
        print(topic, message.payload)
"""

import threading
from typing import Any, Optional, Union

from mqtt_conduit.interfaces import IAsyncClient
from mqtt_conduit.logging import get_logger, log_context
from mqtt_conduit.mqtt.channels import ResultChannel, Subscription
from mqtt_conduit.mqtt.config import ConnectConfig
from mqtt_conduit.mqtt.listeners import ChannelActionListener, SubscriptionListener
from mqtt_conduit.mqtt.options import ConnectOptions, build_options
from mqtt_conduit.mqtt.payload import to_message
from mqtt_conduit.mqtt.token import Token

logger = get_logger(__name__)

DEFAULT_QUIESCE_TIMEOUT = 30.0
DEFAULT_DISCONNECT_TIMEOUT = 30.0


def _listener_for(operation: str, name: str = "") -> tuple[ResultChannel[Token], ChannelActionListener]:
    channel: ResultChannel[Token] = ResultChannel(name=name or operation)
    return channel, ChannelActionListener(channel, operation)


def connect(
    client: IAsyncClient,
    options: Optional[Union[ConnectConfig, ConnectOptions]] = None,
) -> ResultChannel[Token]:
    """Connect ``client`` to its broker.

    Args:
        client: Asynchronous MQTT client
        options: ``ConnectConfig`` (built here), prepared ``ConnectOptions`` or None

    Returns:
        Channel receiving the connect token

    Raises:
        TLSMaterialError: If the TLS material in ``options`` is unusable
    """
    if options is None:
        options = ConnectOptions()
    elif isinstance(options, ConnectConfig):
        options = build_options(options)

    channel, listener = _listener_for("connect")
    with log_context(operation="connect"):
        logger.debug("Issuing connect")
        client.connect(options, listener)
    return channel


def _disconnect_forcibly(
    client: IAsyncClient,
    channel: ResultChannel[Token],
    quiesce_timeout: float,
    disconnect_timeout: float,
) -> None:
    try:
        client.disconnect_forcibly(quiesce_timeout, disconnect_timeout)
    except Exception as e:
        logger.error(f"Forcible disconnect failed: {e}", exc_info=True)
    finally:
        channel.close()


def disconnect(
    client: IAsyncClient,
    force: bool = False,
    quiesce_timeout: float = DEFAULT_QUIESCE_TIMEOUT,
    disconnect_timeout: float = DEFAULT_DISCONNECT_TIMEOUT,
) -> ResultChannel[Token]:
    """Disconnect ``client``.

    Args:
        client: Asynchronous MQTT client
        force: Run a blocking forcible disconnect on a dedicated thread
        quiesce_timeout: Seconds allowed for in-flight work to finish
        disconnect_timeout: Seconds allowed for the disconnect itself (forced only)

    Returns:
        Without ``force``, a channel receiving the disconnect token. With
        ``force``, a channel that closes without a value once the worker
        thread has finished.
    """
    if force:
        channel: ResultChannel[Token] = ResultChannel(name="disconnect-forcibly")
        worker = threading.Thread(
            target=_disconnect_forcibly,
            args=(client, channel, quiesce_timeout, disconnect_timeout),
            name="MQTTConduit-Disconnect",
            daemon=True,
        )
        worker.start()
        return channel

    channel, listener = _listener_for("disconnect")
    with log_context(operation="disconnect"):
        logger.debug(f"Issuing disconnect (quiesce={quiesce_timeout:.1f}s)")
        client.disconnect(quiesce_timeout, listener)
    return channel


def publish(client: IAsyncClient, topic: str, message: Any) -> ResultChannel[Token]:
    """Publish ``message`` to ``topic``.

    Args:
        client: Asynchronous MQTT client
        topic: Topic to publish to
        message: ``Message``, mapping with ``payload``/``qos``/``retained``, or payload bytes

    Returns:
        Channel receiving the publish token

    Raises:
        UnsupportedPayloadTypeError: If the payload cannot be coerced to bytes
    """
    msg = to_message(message)
    channel, listener = _listener_for("publish", topic)
    with log_context(operation="publish", topic=topic):
        logger.debug(f"Issuing publish (qos={msg.qos}, retained={msg.retained}, {len(msg.payload)} bytes)")
        client.publish(topic, msg, listener)
    return channel


def subscribe(client: IAsyncClient, topic: str, qos: int = 0) -> Subscription:
    """Subscribe to ``topic``.

    Args:
        client: Asynchronous MQTT client
        topic: Topic filter (wildcards allowed)
        qos: Requested QoS level

    Returns:
        Channel of ``TopicDelivery`` values. It closes with no deliveries if
        the broker rejects the subscription and stays open otherwise.
    """
    if qos not in (0, 1, 2):
        raise ValueError(f"Invalid QoS level: {qos!r}")
    subscription = Subscription(topic, qos)
    listener = SubscriptionListener(subscription)
    with log_context(operation="subscribe", topic=topic):
        logger.debug(f"Issuing subscribe (qos={qos})")
        client.subscribe(topic, qos, listener, listener)
    return subscription


def unsubscribe(client: IAsyncClient, topic: str) -> ResultChannel[Token]:
    """Unsubscribe from ``topic``.

    Returns:
        Channel receiving the unsubscribe token
    """
    channel, listener = _listener_for("unsubscribe", topic)
    with log_context(operation="unsubscribe", topic=topic):
        logger.debug("Issuing unsubscribe")
        client.unsubscribe(topic, listener)
    return channel
