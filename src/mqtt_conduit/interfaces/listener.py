"""Listener interfaces invoked by the asynchronous MQTT client."""

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mqtt_conduit.mqtt.payload import Message
    from mqtt_conduit.mqtt.token import Token


@runtime_checkable
class IActionListener(Protocol):
    """Receives the outcome of one asynchronous operation.

    Exactly one of the two methods is expected to be called, on a client
    thread. Implementations must return quickly.
    """

    def on_success(self, token: "Token") -> None:
        """Called when the operation completed successfully.

        Args:
            token: Completed token without a failure cause
        """
        ...

    def on_failure(self, token: "Token", exception: BaseException) -> None:
        """Called when the operation failed.

        Args:
            token: Completed token
            exception: Failure cause reported by the client
        """
        ...


@runtime_checkable
class IMessageListener(Protocol):
    """Receives the deliveries of one subscription."""

    def message_arrived(self, topic: str, message: "Message") -> None:
        """Called once per inbound message matching the subscription."""
        ...

    def subscription_ended(self, cause: Optional[BaseException]) -> None:
        """Called once when no further deliveries will arrive.

        Args:
            cause: None after an unsubscribe, the error after a connection loss
        """
        ...
