"""Protocol interfaces between the bridge and the MQTT client."""

from mqtt_conduit.interfaces.listener import IActionListener, IMessageListener
from mqtt_conduit.interfaces.client import IAsyncClient

__all__ = [
    # Listeners
    "IActionListener",
    "IMessageListener",
    # Client
    "IAsyncClient",
]
