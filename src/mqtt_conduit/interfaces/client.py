"""Asynchronous MQTT client interface."""

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from mqtt_conduit.interfaces.listener import IActionListener, IMessageListener

if TYPE_CHECKING:
    from mqtt_conduit.mqtt.options import ConnectOptions
    from mqtt_conduit.mqtt.payload import Message


@runtime_checkable
class IAsyncClient(Protocol):
    """Interface of the asynchronous MQTT client wrapped by the bridge.

    Every operation returns immediately. Outcomes are reported to the given
    listener on the client's own I/O thread. Concurrent ``connect`` calls on
    one client are not supported; publish, subscribe and unsubscribe may be
    issued concurrently once connected.
    """

    def connect(self, options: "ConnectOptions", listener: Optional[IActionListener]) -> None:
        ...

    def disconnect(self, quiesce_timeout: float, listener: Optional[IActionListener]) -> None:
        """Disconnect after allowing up to ``quiesce_timeout`` seconds for in-flight work."""
        ...

    def disconnect_forcibly(self, quiesce_timeout: float, disconnect_timeout: float) -> None:
        """Blocking disconnect bounded by the two timeouts (seconds)."""
        ...

    def publish(self, topic: str, message: "Message", listener: Optional[IActionListener]) -> None:
        ...

    def subscribe(
        self,
        topic: str,
        qos: int,
        listener: Optional[IActionListener],
        message_listener: IMessageListener,
    ) -> None:
        ...

    def unsubscribe(self, topic: str, listener: Optional[IActionListener]) -> None:
        ...

    def is_connected(self) -> bool:
        ...
