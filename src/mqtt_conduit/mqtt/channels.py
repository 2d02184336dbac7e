"""Thread-safe channels that hand results from client threads to consumers.

Values are written by whatever thread the MQTT client uses for its
callbacks and read either by blocking threads (``get`` / iteration) or by
asyncio coroutines (``get_async`` / ``async for``). Coroutine waiters are
resolved through ``loop.call_soon_threadsafe`` so the writer never touches
an event loop directly.
"""

import asyncio
import threading
import time
from collections import deque
from collections.abc import AsyncIterator, Generator, Iterator
from typing import Any, Generic, Optional, TypeVar

from mqtt_conduit.errors import ChannelClosedError
from mqtt_conduit.logging import get_logger
from mqtt_conduit.mqtt.payload import TopicDelivery
from mqtt_conduit.mqtt.token import Token

logger = get_logger(__name__)

T = TypeVar("T")


class Channel(Generic[T]):
    """Unbounded FIFO channel that can be closed.

    Values put before ``close()`` remain readable; once the channel is closed
    and drained, reads raise ``ChannelClosedError`` and iteration stops.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._buffer: deque[T] = deque()
        self._closed = False
        self._cond = threading.Condition()
        self._waiters: deque[asyncio.Future[T]] = deque()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<{type(self).__name__} {self.name!r} {state} buffered={len(self._buffer)}>"

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, value: T) -> bool:
        """Put a value on the channel.

        Args:
            value: Value to deliver (None is reserved)

        Returns:
            True if the value was accepted, False if the channel is closed
        """
        if value is None:
            raise ValueError("Cannot put None on a channel")
        with self._cond:
            if self._closed:
                return False
            self._offer(value)
            return True

    def close(self) -> None:
        """Close the channel. Idempotent."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            waiters = list(self._waiters)
            self._waiters.clear()
            self._cond.notify_all()

        for waiter in waiters:
            if not waiter.done():
                waiter.get_loop().call_soon_threadsafe(self._fail_waiter, waiter)

    def get(self, timeout: Optional[float] = None) -> T:
        """Take the next value, blocking until one is available.

        Args:
            timeout: Maximum seconds to wait (None waits forever)

        Raises:
            ChannelClosedError: If the channel is closed and drained
            TimeoutError: If no value arrived within ``timeout``
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._buffer:
                if self._closed:
                    raise ChannelClosedError(f"Channel {self.name!r} is closed")
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise TimeoutError(f"No value on channel {self.name!r} within {timeout}s")
                self._cond.wait(remaining)
            return self._buffer.popleft()

    async def get_async(self) -> T:
        """Take the next value without blocking the running event loop.

        Raises:
            ChannelClosedError: If the channel is closed and drained
        """
        loop = asyncio.get_running_loop()
        with self._cond:
            if self._buffer:
                return self._buffer.popleft()
            if self._closed:
                raise ChannelClosedError(f"Channel {self.name!r} is closed")
            waiter: asyncio.Future[T] = loop.create_future()
            self._waiters.append(waiter)
        return await waiter

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """Block until the channel is closed.

        Returns:
            True if closed, False if the timeout elapsed first
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._closed, timeout)

    def drain(self) -> list[T]:
        """Return every buffered value without waiting."""
        with self._cond:
            values = list(self._buffer)
            self._buffer.clear()
            return values

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except ChannelClosedError:
                return

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.get_async()
        except ChannelClosedError:
            raise StopAsyncIteration from None

    def _offer(self, value: T, front: bool = False) -> None:
        # Caller holds self._cond.
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            waiter.get_loop().call_soon_threadsafe(self._hand_off, waiter, value)
            return
        if front:
            self._buffer.appendleft(value)
        else:
            self._buffer.append(value)
        self._cond.notify()

    def _hand_off(self, waiter: "asyncio.Future[T]", value: T) -> None:
        if waiter.done():
            # The waiting coroutine was cancelled after the value was assigned to it.
            with self._cond:
                self._offer(value, front=True)
            return
        waiter.set_result(value)

    def _fail_waiter(self, waiter: "asyncio.Future[T]") -> None:
        if waiter.done():
            return
        with self._cond:
            if self._buffer:
                waiter.set_result(self._buffer.popleft())
                return
        waiter.set_exception(ChannelClosedError(f"Channel {self.name!r} is closed"))


class ResultChannel(Channel[T]):
    """Channel that carries at most one value and closes itself after it."""

    def put(self, value: T) -> bool:
        with self._cond:
            if self._closed:
                return False
            accepted = super().put(value)
            self.close()
            return accepted

    def result(self, timeout: Optional[float] = None) -> T:
        """Block until the single value arrives and return it."""
        return self.get(timeout)

    def __await__(self) -> Generator[Any, None, T]:
        return self.get_async().__await__()


class Subscription(Channel[TopicDelivery]):
    """Delivery channel of one subscription.

    The channel stays open for the lifetime of the subscription. It closes
    without any delivery when the broker rejects the subscription, and when
    the subscription ends (unsubscribe or connection loss).

    ``wait_acknowledged`` tells "subscribed, no messages yet" apart from
    "subscribe still pending".
    """

    def __init__(self, topic: str, qos: int = 0) -> None:
        super().__init__(name=topic)
        self.topic = topic
        self.qos = qos
        self.granted_qos: Optional[tuple[int, ...]] = None
        self.cause: Optional[BaseException] = None
        self._acknowledged = False

    @property
    def acknowledged(self) -> bool:
        return self._acknowledged

    def acknowledge(self, token: Token) -> None:
        """Record that the broker accepted the subscription."""
        with self._cond:
            self.granted_qos = token.granted_qos
            self._acknowledged = True
            self._cond.notify_all()

    def reject(self, cause: Optional[BaseException]) -> None:
        """Record why the subscription failed and close the channel."""
        with self._cond:
            self.cause = cause
        self.close()

    def wait_acknowledged(self, timeout: Optional[float] = None) -> bool:
        """Wait for the broker's verdict on the subscription.

        Returns:
            True once acknowledged, False if the channel closed first or the
            timeout elapsed
        """
        with self._cond:
            self._cond.wait_for(lambda: self._acknowledged or self._closed, timeout)
            return self._acknowledged
