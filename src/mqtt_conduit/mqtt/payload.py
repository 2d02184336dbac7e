"""Coercion of application values into canonical MQTT messages.

Accepted publish values:
    - ``Message``: passed through unchanged
    - mapping with ``payload`` and optional ``qos`` / ``retained`` keys
    - ``bytes`` or any buffer-like value (``bytearray``, ``memoryview``, ...)

Strings are rejected on purpose; encode them before publishing.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

from mqtt_conduit.errors import UnsupportedPayloadTypeError


@dataclass(frozen=True)
class Message:
    """One MQTT payload delivery or publish request.

    Attributes:
        payload: Message body
        qos: Quality of Service level (0, 1 or 2)
        retained: Whether the broker should retain the message
        message_id: Packet identifier of an inbound delivery (None for outbound)
        duplicate: Whether an inbound delivery is a redelivery
    """

    payload: bytes
    qos: int = 0
    retained: bool = False
    message_id: Optional[int] = None
    duplicate: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.payload, bytes):
            raise UnsupportedPayloadTypeError(
                f"Message payload must be bytes, got {type(self.payload).__name__}"
            )
        if self.qos not in (0, 1, 2):
            raise ValueError(f"Invalid QoS level: {self.qos!r}")


class TopicDelivery(NamedTuple):
    """An inbound message together with the topic it arrived on."""

    topic: str
    message: Message


def to_bytes(value: Any) -> bytes:
    """Coerce a payload value to a fresh byte sequence.

    Args:
        value: ``bytes`` or an object supporting the buffer protocol

    Returns:
        bytes: The payload bytes. The source object is never modified.

    Raises:
        UnsupportedPayloadTypeError: If the value has no byte representation
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        raise UnsupportedPayloadTypeError("Cannot convert str payload; encode it to bytes first")
    try:
        view = memoryview(value)
    except TypeError:
        raise UnsupportedPayloadTypeError(
            f"Don't know how to convert {type(value).__name__} payload to bytes"
        ) from None
    with view:
        return view.tobytes()


def to_message(value: Any) -> Message:
    """Coerce an application value to a ``Message``.

    Args:
        value: A ``Message``, a mapping with a ``payload`` key, or a payload value

    Returns:
        Message: The canonical message

    Raises:
        UnsupportedPayloadTypeError: If the payload cannot be coerced to bytes
    """
    if isinstance(value, Message):
        return value
    if isinstance(value, Mapping):
        if "payload" not in value:
            raise UnsupportedPayloadTypeError("Message mapping has no 'payload' key")
        qos = value.get("qos")
        return Message(
            payload=to_bytes(value["payload"]),
            qos=0 if qos is None else int(qos),
            retained=bool(value.get("retained") or False),
        )
    return Message(payload=to_bytes(value))
