"""
Alert channel: publish/subscribe fan-out of SOS alerts to connected viewers.

Each subscription owns a bounded queue. Publishing never waits: the event is
put on every open subscriber's queue, and when a queue is full its oldest
buffered event is dropped to make room. Delivery is best-effort and not
durable; a viewer that reconnects gets a new subscription and only sees
alerts published after that.
"""

import asyncio
import logging
import threading
import uuid
from enum import Enum
from typing import Dict, Optional

from sostrack.schemas import AlertEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class SubscriptionClosed(Exception):
    pass


def _current_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Subscription:
    """
    Handle for one viewer connection.

    Iterate it with `async for event in subscription` to receive alerts until
    it is closed. States only move forward: CONNECTING -> OPEN -> CLOSED.
    """

    def __init__(self, maxsize: int):
        self.id = uuid.uuid4().hex[:12]
        self.state = ConnectionState.CONNECTING
        self.dropped = 0
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        # the loop that consumes this queue; deliveries from other threads are handed to it
        self._loop = _current_loop()

    def __repr__(self):
        return f"<Subscription {self.id} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def open(self):
        if self.state is not ConnectionState.CONNECTING:
            raise RuntimeError(f"Cannot open subscription in state {self.state.value}")
        self.state = ConnectionState.OPEN

    def close(self):
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        try:
            self._call(self._put, _CLOSED)
        except RuntimeError:
            # consuming loop already shut down, nobody is waiting
            pass

    def schedule(self, event: AlertEvent):
        self._call(self._deliver, event)

    def _call(self, fn, item):
        loop = self._loop
        if loop is None or _current_loop() is loop:
            fn(item)
        else:
            loop.call_soon_threadsafe(fn, item)

    def _deliver(self, event: AlertEvent):
        if self.state is ConnectionState.CLOSED:
            return
        self._put(event)

    def _put(self, item):
        while self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            logger.warning(f"Subscription {self.id} queue full, dropped oldest alert")
        self._queue.put_nowait(item)

    async def get(self, timeout: Optional[float] = None) -> AlertEvent:
        if self.state is ConnectionState.CLOSED and self._queue.empty():
            raise SubscriptionClosed(self.id)
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED:
            # leave the marker for any other waiter
            self._queue.put_nowait(_CLOSED)
            raise SubscriptionClosed(self.id)
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> AlertEvent:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration


class AlertChannel:
    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Dict[str, Subscription] = {}
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, open_now: bool = True) -> Subscription:
        sub = Subscription(self.queue_size)
        if open_now:
            sub.open()
        with self._lock:
            self._subscribers[sub.id] = sub
        logger.info(f"Alert subscriber {sub.id} registered ({sub.state.value})")
        return sub

    def unsubscribe(self, sub: Subscription):
        with self._lock:
            removed = self._subscribers.pop(sub.id, None)
        sub.close()
        if removed is not None:
            logger.info(f"Alert subscriber {sub.id} removed")

    def publish(self, event: AlertEvent) -> int:
        """Fan `event` out to every open subscriber. Returns how many it was scheduled for."""
        with self._lock:
            targets = [s for s in self._subscribers.values() if s.is_open]

        delivered = 0
        for sub in targets:
            try:
                sub.schedule(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Delivery to subscriber {sub.id} failed: {e}")
                self.unsubscribe(sub)

        logger.info(f"Published SOS alert from {event.name} to {delivered} subscriber(s)")
        return delivered

    def close_all(self):
        with self._lock:
            subs = list(self._subscribers.values())
            self._subscribers.clear()
        for sub in subs:
            sub.close()
