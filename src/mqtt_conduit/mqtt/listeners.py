"""Listeners that funnel client callbacks onto channels."""

from typing import Optional

from mqtt_conduit.logging import get_logger
from mqtt_conduit.mqtt.channels import ResultChannel, Subscription
from mqtt_conduit.mqtt.payload import Message, TopicDelivery
from mqtt_conduit.mqtt.token import Token

logger = get_logger(__name__)


class ChannelActionListener:
    """Writes the outcome of one operation to a single-value channel.

    Some clients report both success and failure for one operation under
    rare races. The first outcome wins; later ones are logged and dropped.
    """

    def __init__(self, channel: ResultChannel[Token], operation: str) -> None:
        self._channel = channel
        self._operation = operation

    def on_success(self, token: Token) -> None:
        self._deliver(token)

    def on_failure(self, token: Token, exception: BaseException) -> None:
        if token.exception is None:
            token = token.failed(exception)
        logger.debug(f"{self._operation} failed: {exception}")
        self._deliver(token)

    def _deliver(self, token: Token) -> None:
        if not self._channel.put(token):
            logger.warning(f"Ignoring repeated completion of {self._operation} (success={token.success})")


class SubscriptionListener:
    """Action and message listener of one subscription.

    A rejected subscribe closes the delivery channel without delivering a
    token. A successful one only marks the channel as acknowledged.
    """

    def __init__(self, subscription: Subscription) -> None:
        self._subscription = subscription

    def on_success(self, token: Token) -> None:
        logger.debug(f"Subscribed to {self._subscription.topic} (granted={token.granted_qos})")
        self._subscription.acknowledge(token)

    def on_failure(self, token: Token, exception: BaseException) -> None:
        logger.warning(f"Subscription to {self._subscription.topic} rejected: {exception}")
        self._subscription.reject(token.exception or exception)

    def message_arrived(self, topic: str, message: Message) -> None:
        if not self._subscription.put(TopicDelivery(topic, message)):
            logger.debug(f"Dropping delivery on {topic}: subscription channel closed")

    def subscription_ended(self, cause: Optional[BaseException]) -> None:
        if cause is not None:
            logger.info(f"Subscription to {self._subscription.topic} ended: {cause}")
        self._subscription.close()
