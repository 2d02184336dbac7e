"""Outcome records for one-shot MQTT operations."""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class Token:
    """Outcome of a one-shot asynchronous operation.

    A token read from a result channel is always complete.

    Attributes:
        operation: Operation name (connect, disconnect, publish, subscribe, unsubscribe)
        complete: Whether the operation finished
        exception: Failure cause, None on success
        granted_qos: QoS levels granted by the broker (subscribe only)
        message_id: Packet identifier of the operation, if it had one
    """

    operation: str
    complete: bool = True
    exception: Optional[BaseException] = None
    granted_qos: Optional[tuple[int, ...]] = None
    message_id: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.complete and self.exception is None

    def failed(self, exception: BaseException) -> "Token":
        """Return a copy of this token carrying ``exception``."""
        return replace(self, complete=True, exception=exception)


def is_success(token: Token) -> bool:
    return token.success


def exception_of(token: Token) -> Optional[BaseException]:
    return token.exception


def granted_qos_of(token: Token) -> Optional[tuple[int, ...]]:
    return token.granted_qos


def message_id_of(token: Token) -> Optional[int]:
    return token.message_id
