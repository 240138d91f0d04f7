"""Base notifier interface for nexusflow status events."""

from __future__ import annotations

import abc
import logging
from typing import Iterable

from ..contracts import NotificationEvent

logger = logging.getLogger(__name__)


class BaseNotifier(metaclass=abc.ABCMeta):
    """Abstract fan-out channel for execution and step updates.

    Delivery is best-effort: implementations should not raise for a single
    unreachable subscriber.
    """

    async def connect(self) -> None:
        """Open connection to the channel (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to the channel (no-op by default)."""
        pass

    @abc.abstractmethod
    async def broadcast(self, event: NotificationEvent) -> None:
        """Send ``event`` to every current subscriber."""
        raise NotImplementedError


class FanoutNotifier(BaseNotifier):
    """Broadcast each event through several notifiers in order."""

    def __init__(self, notifiers: Iterable[BaseNotifier]) -> None:
        self.notifiers = list(notifiers)

    async def connect(self) -> None:
        for notifier in self.notifiers:
            await notifier.connect()

    async def disconnect(self) -> None:
        for notifier in self.notifiers:
            await notifier.disconnect()

    async def broadcast(self, event: NotificationEvent) -> None:
        for notifier in self.notifiers:
            try:
                await notifier.broadcast(event)
            except Exception as e:
                logger.warning(
                    f"{notifier.__class__.__name__} failed to deliver {event.type}: {e}"
                )
