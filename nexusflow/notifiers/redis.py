"""Redis pub/sub notifier for cross-process subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

import redis.asyncio as redis
from pydantic import TypeAdapter, ValidationError

from ..contracts import NotificationEvent
from .base import BaseNotifier

logger = logging.getLogger(__name__)

_event_adapter: TypeAdapter[NotificationEvent] = TypeAdapter(NotificationEvent)


class RedisNotifier(BaseNotifier):
    """Publish events as JSON on a Redis channel."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        channel: str = "nexusflow:events",
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.channel = channel
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def broadcast(self, event: NotificationEvent) -> None:
        """Publish ``event`` to the configured channel."""
        if not self._redis:
            await self.connect()
        await self._redis.publish(self.channel, event.to_json())

    async def subscribe(
        self, lifespan: Optional[float] = None
    ) -> AsyncIterator[NotificationEvent]:
        """Yield events published on the channel.

        Args:
            lifespan: Maximum time in seconds to keep listening. If None, runs indefinitely.
        """
        if not self._redis:
            await self.connect()

        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self.channel)
        start_time = asyncio.get_running_loop().time() if lifespan else None
        try:
            while True:
                if lifespan and start_time:
                    elapsed = asyncio.get_running_loop().time() - start_time
                    if elapsed >= lifespan:
                        break

                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=1.0
                )
                if message is None:
                    continue
                try:
                    yield _event_adapter.validate_json(message["data"])
                except ValidationError as e:
                    logger.warning(f"Ignoring malformed event on {self.channel}: {e}")
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
