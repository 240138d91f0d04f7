"""In-process notifier for tests and the CLI."""

from __future__ import annotations

import asyncio
from typing import List, Optional

from ..contracts import NotificationEvent
from .base import BaseNotifier


class Subscription:
    """Queue of events delivered to one subscriber.

    Iterate with ``async for``; use as a context manager to unsubscribe.
    """

    def __init__(self, notifier: "InMemoryNotifier", execution_id: Optional[str]) -> None:
        self._notifier = notifier
        self.execution_id = execution_id
        self.queue: asyncio.Queue[NotificationEvent] = asyncio.Queue()

    def wants(self, event: NotificationEvent) -> bool:
        return self.execution_id is None or event.execution_id == self.execution_id

    async def get(self, timeout: Optional[float] = None) -> NotificationEvent:
        return await asyncio.wait_for(self.queue.get(), timeout=timeout)

    def close(self) -> None:
        self._notifier.unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> NotificationEvent:
        return await self.queue.get()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class InMemoryNotifier(BaseNotifier):
    """Deliver events to in-process subscribers through asyncio queues."""

    def __init__(self) -> None:
        self._subscribers: List[Subscription] = []

    def subscribe(self, execution_id: Optional[str] = None) -> Subscription:
        """Register a subscriber, optionally filtered to one execution."""
        subscription = Subscription(self, execution_id)
        self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def broadcast(self, event: NotificationEvent) -> None:
        for subscription in list(self._subscribers):
            if subscription.wants(event):
                subscription.queue.put_nowait(event)
