"""
Live Notifier - best-effort fan-out of pipeline and session events.

One publish channel, many independent listener registrations. Each listener
owns a bounded queue, so delivery is FIFO per listener and a slow or dead
listener only loses its own events. There is no replay buffer: a listener
that subscribes late misses everything published before it. This is a
notification channel, not a durable log.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any


logger = logging.getLogger(__name__)


class EventType:
    NEW_ARTICLE = "new-article"
    TRENDING_UPDATED = "trending-updated"
    HEARTBEAT = "heartbeat"
    CONNECTED = "connected"


@dataclass(frozen=True)
class Event:
    type: str
    payload: dict[str, Any]
    timestamp: float = field(default_factory=time.time)

    def to_message(self) -> dict[str, Any]:
        """Wire form sent to clients."""
        return {"type": self.type, "data": self.payload, "timestamp": self.timestamp}


class Subscription:
    """A single listener's view of the event stream."""

    def __init__(self, notifier: "LiveNotifier", max_pending: int):
        self._notifier = notifier
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=max_pending)
        self.dropped = 0

    def _offer(self, event: Event) -> bool:
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            return False

    async def get(self) -> Event:
        """Wait for the next event."""
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self):
        self._notifier.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Event:
        return await self.get()


class LiveNotifier:
    """Broadcast-only publisher with per-listener queues."""

    def __init__(self, max_pending: int = 100):
        self.max_pending = max_pending
        self._subscribers: set[Subscription] = set()

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self.max_pending)
        self._subscribers.add(subscription)
        logger.debug(f"Listener subscribed ({len(self._subscribers)} connected)")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        self._subscribers.discard(subscription)
        logger.debug(f"Listener unsubscribed ({len(self._subscribers)} connected)")

    @property
    def listener_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event_type: str, payload: dict[str, Any] | None = None) -> int:
        """
        Deliver an event to every current listener without blocking.

        Returns the number of listeners that accepted the event. A listener
        whose queue is full misses this event; others are unaffected.
        """
        event = Event(type=event_type, payload=payload or {})
        delivered = 0
        for subscription in list(self._subscribers):
            if subscription._offer(event):
                delivered += 1
            else:
                logger.warning(f"Dropped {event_type} event for slow listener ({subscription.dropped} dropped so far)")
        return delivered
