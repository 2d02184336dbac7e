"""paho-mqtt implementation of ``IAsyncClient``.

paho reports operation outcomes through client-wide callbacks keyed by
message id (``on_publish``, ``on_subscribe``, ...). This adapter keeps the
listener of every in-flight operation under its message id and routes each
outcome to exactly one listener. Inbound messages are routed per topic
filter with ``message_callback_add``.

All callbacks run on paho's network thread, started with ``loop_start()``.
Nothing in this module calls into paho while holding ``self._lock``: paho
holds its own callback mutex while dispatching messages, and the opposite
acquisition order would deadlock.
"""

import functools
import ssl
import threading
import uuid
from typing import Any, NamedTuple, Optional
from urllib.parse import urlsplit

import paho.mqtt.client as mqtt

from mqtt_conduit.errors import (
    ConnectionLostError,
    OperationFailedError,
    SubscriptionRejectedError,
    TLSMaterialError,
)
from mqtt_conduit.interfaces import IActionListener, IMessageListener
from mqtt_conduit.logging import get_logger
from mqtt_conduit.mqtt.config import ClientConfig
from mqtt_conduit.mqtt.options import ConnectOptions
from mqtt_conduit.mqtt.payload import Message
from mqtt_conduit.mqtt.token import Token
from mqtt_conduit.tls import apply_ssl_properties

logger = get_logger(__name__)

DEFAULT_KEEP_ALIVE = 60

# scheme -> (paho transport, TLS by default, default port)
_SCHEMES = {
    "tcp": ("tcp", False, 1883),
    "mqtt": ("tcp", False, 1883),
    "ssl": ("tcp", True, 8883),
    "mqtts": ("tcp", True, 8883),
    "ws": ("websockets", False, 80),
    "wss": ("websockets", True, 443),
}


class ServerAddress(NamedTuple):
    host: str
    port: int
    transport: str
    tls: bool
    path: str = "/mqtt"


def parse_server_uri(uri: str) -> ServerAddress:
    """Parse a broker URI such as ``tcp://host:1883`` or ``wss://host/mqtt``.

    Raises:
        ValueError: If the scheme is unsupported or the host is missing
    """
    parts = urlsplit(uri)
    scheme = parts.scheme.lower()
    if scheme not in _SCHEMES:
        raise ValueError(f"Unsupported MQTT server URI scheme: {uri!r}")
    if not parts.hostname:
        raise ValueError(f"MQTT server URI has no host: {uri!r}")
    transport, tls, default_port = _SCHEMES[scheme]
    return ServerAddress(
        host=parts.hostname,
        port=parts.port or default_port,
        transport=transport,
        tls=tls,
        path=parts.path or "/mqtt",
    )


class _PendingAction(NamedTuple):
    operation: str
    listener: Optional[IActionListener]
    topic: Optional[str] = None
    message_listener: Optional[IMessageListener] = None


class PahoAsyncClient:
    """Asynchronous MQTT client backed by paho-mqtt.

    Args:
        address: Broker address
        client_id: Client identifier (auto-generated if None)
        clean_session: Whether to start a clean session
        client: Pre-built paho client (tests inject a mock here)
    """

    def __init__(
        self,
        address: ServerAddress,
        client_id: Optional[str] = None,
        clean_session: bool = True,
        client: Optional[Any] = None,
    ) -> None:
        self._address = address
        self.client_id = client_id or f"mqtt-conduit-{uuid.uuid4().hex[:8]}"
        self._clean_session = clean_session
        # Only a client built here can be rebuilt when the TLS settings change.
        self._owns_client = client is None
        self._client = self._build_client() if client is None else client
        self._wire_callbacks(self._client)

        self._lock = threading.Condition()
        self._connected = False
        self._installed_tls_context: Optional[ssl.SSLContext] = None
        self._default_tls_context: Optional[ssl.SSLContext] = None
        self._disconnecting = False
        self._pending: dict[int, _PendingAction] = {}
        # Outcomes paho reported before the issuing call returned the message id
        self._early: dict[int, tuple[Optional[BaseException], Optional[tuple[int, ...]]]] = {}
        self._connect_listener: Optional[IActionListener] = None
        self._disconnect_listener: Optional[IActionListener] = None
        self._message_listeners: dict[str, list[IMessageListener]] = {}

        logger.info(f"MQTT client initialized with ID: {self.client_id}")

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=self._clean_session,
            transport=self._address.transport,
            reconnect_on_failure=False,
        )
        if self._address.transport == "websockets":
            client.ws_set_options(path=self._address.path)
        return client

    def _wire_callbacks(self, client: Any) -> None:
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.on_publish = self._on_publish
        client.on_subscribe = self._on_subscribe
        client.on_unsubscribe = self._on_unsubscribe

    def is_connected(self) -> bool:
        return self._connected

    # ---- operations ----

    def connect(self, options: ConnectOptions, listener: Optional[IActionListener]) -> None:
        # Reap a network thread left over from a previous connection.
        self._client.loop_stop()
        try:
            self._apply_options(options)
        except TLSMaterialError as e:
            logger.error(f"Cannot apply connection options: {e}")
            self._notify(listener, Token("connect"), e)
            return

        with self._lock:
            self._connect_listener = listener

        keep_alive = options.keep_alive_interval
        logger.info(f"Connecting to MQTT broker at {self._address.host}:{self._address.port}")
        try:
            self._client.connect_async(
                self._address.host,
                self._address.port,
                keepalive=DEFAULT_KEEP_ALIVE if keep_alive is None else keep_alive,
            )
        except (OSError, ValueError) as e:
            failure = OperationFailedError("connect", str(e))
            self._notify(self._take_connect_listener(), Token("connect"), failure)
            return
        self._client.loop_start()

    def disconnect(self, quiesce_timeout: float, listener: Optional[IActionListener]) -> None:
        with self._lock:
            connected = self._connected
            if connected:
                self._disconnect_listener = listener
                self._disconnecting = True
        if not connected:
            failure = OperationFailedError("disconnect", "client is not connected")
            self._notify(listener, Token("disconnect"), failure)
            return

        if quiesce_timeout > 0 and self._has_inflight_publishes():
            threading.Thread(
                target=self._quiesce_then_disconnect,
                args=(quiesce_timeout,),
                name="MQTTConduit-Quiesce",
                daemon=True,
            ).start()
        else:
            self._send_disconnect()

    def disconnect_forcibly(self, quiesce_timeout: float, disconnect_timeout: float) -> None:
        closed = False
        if self._connected:
            self._wait_for_quiesce(quiesce_timeout)
            with self._lock:
                self._disconnecting = True
            self._client.disconnect()
            with self._lock:
                closed = self._lock.wait_for(lambda: not self._connected, disconnect_timeout)
            if not closed:
                logger.warning(f"Broker did not close the connection within {disconnect_timeout:.1f}s")
        self._client.loop_stop()
        if not closed:
            # Nothing reports back once the network loop is stopped: settle a pending
            # connect and every in-flight operation here.
            lost = ConnectionLostError("disconnect", "forcibly disconnected")
            self._connection_closed(lost, requested=True)

    def publish(self, topic: str, message: Message, listener: Optional[IActionListener]) -> None:
        info = self._client.publish(topic, message.payload, qos=message.qos, retain=message.retained)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._notify(
                listener,
                Token("publish", message_id=info.mid),
                OperationFailedError("publish", mqtt.error_string(info.rc), info.rc),
            )
            return
        self._track(info.mid, _PendingAction("publish", listener, topic))

    def subscribe(
        self,
        topic: str,
        qos: int,
        listener: Optional[IActionListener],
        message_listener: IMessageListener,
    ) -> None:
        # Route first so deliveries racing the SUBACK are not lost.
        with self._lock:
            self._message_listeners.setdefault(topic, []).append(message_listener)
        self._client.message_callback_add(topic, functools.partial(self._on_filtered_message, topic))

        result, mid = self._client.subscribe(topic, qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            self._remove_message_listener(topic, message_listener)
            self._notify(
                listener,
                Token("subscribe", message_id=mid),
                OperationFailedError("subscribe", mqtt.error_string(result), result),
            )
            return
        self._track(mid, _PendingAction("subscribe", listener, topic, message_listener))

    def unsubscribe(self, topic: str, listener: Optional[IActionListener]) -> None:
        result, mid = self._client.unsubscribe(topic)
        if result != mqtt.MQTT_ERR_SUCCESS:
            self._notify(
                listener,
                Token("unsubscribe", message_id=mid),
                OperationFailedError("unsubscribe", mqtt.error_string(result), result),
            )
            return
        self._track(mid, _PendingAction("unsubscribe", listener, topic))

    # ---- helpers ----

    def _apply_options(self, options: ConnectOptions) -> None:
        """Apply per-connect options to the paho client.

        paho accepts a TLS context only once per client. When a connect asks
        for a different context than the installed one, a client built by
        this adapter is replaced by a fresh one; an injected client cannot be
        replaced and the connect fails instead of reusing stale TLS settings.

        Raises:
            TLSMaterialError: If the TLS settings of an injected client would change
        """
        context = self._tls_context(options)
        if context is not self._installed_tls_context:
            if self._installed_tls_context is not None:
                self._replace_client()
            if context is not None:
                self._client.tls_set_context(context)
            self._installed_tls_context = context

        if options.username is not None or options.password is not None:
            self._client.username_pw_set(options.username or "", options.password)
        # paho rejects a zero timeout; zero keeps its default
        if options.connection_timeout:
            self._client.connect_timeout = options.connection_timeout

    def _replace_client(self) -> None:
        if not self._owns_client:
            raise TLSMaterialError(
                "TLS settings of an injected paho client cannot change after the first connect"
            )
        logger.info("TLS settings changed; recreating the paho client")
        self._client = self._build_client()
        self._wire_callbacks(self._client)

    def _tls_context(self, options: ConnectOptions) -> Optional[ssl.SSLContext]:
        if options.socket_factory is not None:
            context = options.socket_factory.context
        elif not self._address.tls:
            if options.ssl_properties:
                logger.warning(
                    f"Ignoring TLS properties {sorted(options.ssl_properties)}: "
                    f"{self._address.transport} transport to port {self._address.port} is not TLS"
                )
            return None
        elif not options.ssl_properties:
            # Plain TLS URI: keep one default context so reconnects leave the client alone.
            if self._default_tls_context is None:
                self._default_tls_context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
            return self._default_tls_context
        else:
            context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        if options.ssl_properties:
            apply_ssl_properties(context, options.ssl_properties)
        return context

    def _take_connect_listener(self) -> Optional[IActionListener]:
        with self._lock:
            listener = self._connect_listener
            self._connect_listener = None
            return listener

    def _has_inflight_publishes(self) -> bool:
        with self._lock:
            return any(p.operation == "publish" for p in self._pending.values())

    def _wait_for_quiesce(self, timeout: float) -> bool:
        with self._lock:
            return self._lock.wait_for(
                lambda: not any(p.operation == "publish" for p in self._pending.values()),
                timeout,
            )

    def _quiesce_then_disconnect(self, timeout: float) -> None:
        if not self._wait_for_quiesce(timeout):
            logger.warning(f"In-flight publishes did not complete within {timeout:.1f}s")
        self._send_disconnect()

    def _send_disconnect(self) -> None:
        rc = self._client.disconnect()
        if rc == mqtt.MQTT_ERR_SUCCESS:
            return
        with self._lock:
            listener = self._disconnect_listener
            self._disconnect_listener = None
            self._disconnecting = False
        failure = OperationFailedError("disconnect", mqtt.error_string(rc), rc)
        self._notify(listener, Token("disconnect"), failure)

    def _track(self, mid: int, pending: _PendingAction) -> None:
        with self._lock:
            early = self._early.pop(mid, None)
            if early is None:
                self._pending[mid] = pending
                return
        self._finish(mid, pending, *early)

    def _complete(
        self,
        mid: int,
        exception: Optional[BaseException] = None,
        granted_qos: Optional[tuple[int, ...]] = None,
    ) -> None:
        with self._lock:
            pending = self._pending.pop(mid, None)
            if pending is None:
                # paho may call back before publish()/subscribe() has returned the mid.
                self._early[mid] = (exception, granted_qos)
                return
            self._lock.notify_all()
        self._finish(mid, pending, exception, granted_qos)

    def _finish(
        self,
        mid: int,
        pending: _PendingAction,
        exception: Optional[BaseException],
        granted_qos: Optional[tuple[int, ...]],
    ) -> None:
        if pending.operation == "subscribe" and exception is not None:
            self._remove_message_listener(pending.topic, pending.message_listener)
        token = Token(pending.operation, message_id=mid, granted_qos=granted_qos)
        self._notify(pending.listener, token, exception)
        if pending.operation == "unsubscribe" and exception is None:
            self._end_subscriptions(pending.topic, None)

    def _notify(
        self,
        listener: Optional[IActionListener],
        token: Token,
        exception: Optional[BaseException] = None,
    ) -> None:
        if listener is None:
            return
        try:
            if exception is None:
                listener.on_success(token)
            else:
                listener.on_failure(token.failed(exception), exception)
        except Exception as e:
            logger.error(f"Error in {token.operation} listener: {e}", exc_info=True)

    def _remove_message_listener(self, topic: Optional[str], listener: Optional[IMessageListener]) -> None:
        with self._lock:
            listeners = self._message_listeners.get(topic, [])
            if listener in listeners:
                listeners.remove(listener)
            emptied = not listeners
            if emptied:
                self._message_listeners.pop(topic, None)
        if emptied and topic is not None:
            self._client.message_callback_remove(topic)

    def _end_subscriptions(self, topic: Optional[str], cause: Optional[BaseException]) -> None:
        with self._lock:
            listeners = self._message_listeners.pop(topic, [])
        if topic is not None:
            self._client.message_callback_remove(topic)
        for listener in listeners:
            self._notify_ended(listener, cause)

    def _notify_ended(self, listener: IMessageListener, cause: Optional[BaseException]) -> None:
        try:
            listener.subscription_ended(cause)
        except Exception as e:
            logger.error(f"Error in subscription listener: {e}", exc_info=True)

    def _connection_closed(self, cause: Optional[BaseException], requested: bool) -> None:
        with self._lock:
            self._connected = False
            self._disconnecting = False
            disconnect_listener = self._disconnect_listener
            connect_listener = self._connect_listener
            self._disconnect_listener = None
            self._connect_listener = None
            pending = list(self._pending.items())
            self._pending.clear()
            self._early.clear()
            subscriptions = self._message_listeners
            self._message_listeners = {}
            self._lock.notify_all()

        for topic in subscriptions:
            self._client.message_callback_remove(topic)
        lost = cause or ConnectionLostError("connection", "disconnected before completion")
        if disconnect_listener is not None:
            if requested and cause is None:
                self._notify(disconnect_listener, Token("disconnect"))
            else:
                self._notify(disconnect_listener, Token("disconnect"), lost)
        self._notify(connect_listener, Token("connect"), lost)
        for mid, action in pending:
            self._notify(
                action.listener,
                Token(action.operation, message_id=mid),
                ConnectionLostError(action.operation, "connection closed before completion"),
            )
        for listeners in subscriptions.values():
            for listener in listeners:
                self._notify_ended(listener, cause)

    # ---- paho callbacks ----

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        listener = self._take_connect_listener()
        if reason_code.is_failure:
            logger.error(f"MQTT broker refused connection: {reason_code}")
            # No retries: a refused connect completes the operation.
            self._client.loop_stop()
            failure = OperationFailedError("connect", "connection refused", reason_code)
            self._notify(listener, Token("connect"), failure)
            return

        with self._lock:
            self._connected = True
        logger.info(f"Connected to MQTT broker at {self._address.host}:{self._address.port}")
        self._notify(listener, Token("connect"))

    def _on_connect_fail(self, client: mqtt.Client, userdata: Any) -> None:
        listener = self._take_connect_listener()
        logger.error(f"Failed to connect to MQTT broker at {self._address.host}:{self._address.port}")
        self._client.loop_stop()
        self._notify(listener, Token("connect"), OperationFailedError("connect", "could not reach broker"))

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        disconnect_flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        with self._lock:
            requested = self._disconnecting
        if requested and not reason_code.is_failure:
            logger.info("Disconnected from MQTT broker")
            self._connection_closed(None, requested=True)
        else:
            logger.warning(f"Connection to MQTT broker lost: {reason_code}")
            self._connection_closed(
                ConnectionLostError("connection", "connection lost", reason_code), requested=requested
            )

    def _on_publish(
        self,
        client: mqtt.Client,
        userdata: Any,
        mid: int,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        exception = None
        if reason_code.is_failure:
            exception = OperationFailedError("publish", "rejected by broker", reason_code)
        self._complete(mid, exception)

    def _on_subscribe(
        self,
        client: mqtt.Client,
        userdata: Any,
        mid: int,
        reason_code_list: list[Any],
        properties: Any = None,
    ) -> None:
        granted = tuple(rc.value for rc in reason_code_list)
        rejected = [rc for rc in reason_code_list if rc.is_failure]
        exception = None
        if rejected:
            exception = SubscriptionRejectedError("subscribe", "rejected by broker", rejected[0])
        self._complete(mid, exception, granted)

    def _on_unsubscribe(
        self,
        client: mqtt.Client,
        userdata: Any,
        mid: int,
        reason_code_list: list[Any],
        properties: Any = None,
    ) -> None:
        rejected = [rc for rc in reason_code_list if rc.is_failure]
        exception = None
        if rejected:
            exception = OperationFailedError("unsubscribe", "rejected by broker", rejected[0])
        self._complete(mid, exception)

    def _on_filtered_message(
        self,
        topic_filter: str,
        client: mqtt.Client,
        userdata: Any,
        msg: mqtt.MQTTMessage,
    ) -> None:
        with self._lock:
            listeners = list(self._message_listeners.get(topic_filter, ()))
        if not listeners:
            return

        message = Message(
            payload=bytes(msg.payload),
            qos=msg.qos,
            retained=bool(msg.retain),
            message_id=msg.mid,
            duplicate=bool(msg.dup),
        )
        for listener in listeners:
            try:
                listener.message_arrived(msg.topic, message)
            except Exception as e:
                logger.error(f"Error in message listener for {msg.topic}: {e}", exc_info=True)


def create_client(
    server_uri: str,
    client_id: Optional[str] = None,
    clean_session: bool = True,
    client: Optional[Any] = None,
) -> PahoAsyncClient:
    """Create a new asynchronous MQTT client.

    Args:
        server_uri: Broker URI (tcp://, mqtt://, ssl://, mqtts://, ws://, wss://)
        client_id: Client identifier (auto-generated if None)
        clean_session: Whether to start a clean session
        client: Pre-built paho client to wrap
    """
    return PahoAsyncClient(parse_server_uri(server_uri), client_id, clean_session, client=client)


def create_client_from_config(config: Optional[ClientConfig] = None) -> PahoAsyncClient:
    """Create a client from ``ClientConfig`` (loaded from the environment if None)."""
    config = config or ClientConfig.from_env()
    return create_client(config.server_uri, config.client_id, config.clean_session)
