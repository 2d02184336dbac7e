"""Object-style facade over the bridge functions."""

from typing import Any, Optional, Union

from mqtt_conduit.interfaces import IAsyncClient
from mqtt_conduit.logging import get_logger
from mqtt_conduit.mqtt import bridge
from mqtt_conduit.mqtt.channels import ResultChannel, Subscription
from mqtt_conduit.mqtt.config import ClientConfig, ConnectConfig
from mqtt_conduit.mqtt.options import ConnectOptions
from mqtt_conduit.mqtt.paho_client import create_client_from_config
from mqtt_conduit.mqtt.token import Token

logger = get_logger(__name__)


class ChannelClient:
    """Channel-returning MQTT client.

    Binds the bridge operations to one ``IAsyncClient`` and a default
    ``ConnectConfig``. Used as a context manager it connects on entry and
    forcibly disconnects on exit.

    Example:
        >>> with ChannelClient.from_config(ClientConfig(server_uri="tcp://localhost:1883")) as mqtt:
        ...     readings = mqtt.subscribe("sensors/+", qos=1)
        ...     mqtt.publish("sensors/temp", b"21.5").result(5)
    """

    def __init__(
        self,
        client: IAsyncClient,
        connect_config: Optional[ConnectConfig] = None,
        connect_timeout: float = 30.0,
    ) -> None:
        """Initialize the facade.

        Args:
            client: Asynchronous MQTT client to drive
            connect_config: Options used when ``connect()`` gets none
            connect_timeout: Seconds the context manager waits for the connect token
        """
        self._client = client
        self._connect_config = connect_config
        self._connect_timeout = connect_timeout

    @classmethod
    def from_config(
        cls,
        client_config: Optional[ClientConfig] = None,
        connect_config: Optional[ConnectConfig] = None,
    ) -> "ChannelClient":
        """Create a paho-backed client. Missing configs are loaded from the environment."""
        return cls(
            create_client_from_config(client_config),
            connect_config if connect_config is not None else ConnectConfig.from_env(),
        )

    @property
    def client(self) -> IAsyncClient:
        return self._client

    def is_connected(self) -> bool:
        return self._client.is_connected()

    def connect(
        self, options: Optional[Union[ConnectConfig, ConnectOptions]] = None
    ) -> ResultChannel[Token]:
        return bridge.connect(self._client, options if options is not None else self._connect_config)

    def disconnect(
        self,
        force: bool = False,
        quiesce_timeout: float = bridge.DEFAULT_QUIESCE_TIMEOUT,
        disconnect_timeout: float = bridge.DEFAULT_DISCONNECT_TIMEOUT,
    ) -> ResultChannel[Token]:
        return bridge.disconnect(self._client, force, quiesce_timeout, disconnect_timeout)

    def publish(self, topic: str, message: Any) -> ResultChannel[Token]:
        return bridge.publish(self._client, topic, message)

    def subscribe(self, topic: str, qos: int = 0) -> Subscription:
        return bridge.subscribe(self._client, topic, qos)

    def unsubscribe(self, topic: str) -> ResultChannel[Token]:
        return bridge.unsubscribe(self._client, topic)

    def __enter__(self) -> "ChannelClient":
        token = self.connect().result(self._connect_timeout)
        if not token.success:
            raise token.exception
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client.is_connected():
            self.disconnect(force=True).wait_closed()
