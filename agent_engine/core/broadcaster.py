"""In-memory fan-out channel delivering engine events to subscribed sessions."""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List

from agent_engine.logging_config import get_structured_logger

from .models import Event, SessionJoinedEvent

logger = get_structured_logger(__name__)


_CLOSED = object()


class SubscriptionClosed(Exception):
    """Raised by :meth:`Subscription.get` once the subscription is closed."""


class Subscription:
    """Bounded event queue owned by one subscriber.

    When the queue is full the oldest pending event is discarded so the
    publisher never waits on a slow consumer.
    """

    def __init__(self, session_id: str, maxsize: int) -> None:
        self.session_id = session_id
        self.dropped = 0
        self.closed = False
        # One extra slot keeps room for the close marker.
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize + 1)
        self._maxsize = maxsize

    def offer(self, event: Event) -> None:
        if self.closed:
            return
        if self._queue.qsize() >= self._maxsize:
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    def close(self) -> None:
        """Wake the consumer; pending events are still delivered first."""
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> Event:
        item = await self._queue.get()
        return self._unwrap(item)

    def get_nowait(self) -> Event:
        return self._unwrap(self._queue.get_nowait())

    def _unwrap(self, item: Any) -> Event:
        if item is _CLOSED:
            # Leave the marker for any later reader.
            self._queue.put_nowait(_CLOSED)
            raise SubscriptionClosed(self.session_id)
        return item

    def pending(self) -> int:
        return self._queue.qsize() - (1 if self.closed else 0)

    def __aiter__(self) -> AsyncIterator[Event]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Event]:
        while True:
            try:
                yield await self.get()
            except SubscriptionClosed:
                return


class ProgressBroadcaster:
    """Publish/subscribe hub for progress and completion events."""

    def __init__(self, queue_size: int = 256) -> None:
        self._queue_size = queue_size
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def register(self, session_id: str) -> Subscription:
        subscription = Subscription(session_id, self._queue_size)
        async with self._lock:
            self._subscriptions[session_id].append(subscription)
        logger.structured(logging.DEBUG, "Session subscribed", {"session_id": session_id})
        return subscription

    async def remove(self, subscription: Subscription) -> None:
        subscription.close()
        async with self._lock:
            session = self._subscriptions.get(subscription.session_id)
            if session and subscription in session:
                session.remove(subscription)
                if not session:
                    del self._subscriptions[subscription.session_id]

    async def unsubscribe(self, session_id: str) -> None:
        """Drop every subscription belonging to the session."""
        async with self._lock:
            subscriptions = self._subscriptions.pop(session_id, [])
        for subscription in subscriptions:
            subscription.close()
        logger.structured(logging.DEBUG, "Session unsubscribed", {"session_id": session_id})

    @asynccontextmanager
    async def subscribe(self, session_id: str) -> AsyncIterator[Subscription]:
        """Context manager yielding the session's event stream."""
        subscription = await self.register(session_id)
        try:
            yield subscription
        finally:
            await self.remove(subscription)

    def join(self, session_id: str) -> SessionJoinedEvent:
        """Acknowledge a session join on that session's streams only."""
        event = SessionJoinedEvent(session_id=session_id)
        for subscription in list(self._subscriptions.get(session_id, ())):
            subscription.offer(event)
        return event

    def publish(self, event: Event) -> int:
        """Deliver ``event`` to every current subscriber without blocking.

        Returns the number of subscriptions the event was queued on.
        """
        delivered = 0
        for subscriptions in list(self._subscriptions.values()):
            for subscription in list(subscriptions):
                before = subscription.dropped
                subscription.offer(event)
                if subscription.dropped != before:
                    logger.structured(
                        logging.WARNING,
                        "Subscriber queue full, dropped oldest event",
                        {"session_id": subscription.session_id, "dropped": subscription.dropped},
                    )
                delivered += 1
        return delivered

    def session_ids(self) -> List[str]:
        return list(self._subscriptions.keys())

    def subscriber_count(self) -> int:
        return sum(len(subscriptions) for subscriptions in self._subscriptions.values())
