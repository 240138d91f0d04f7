"""WebSocket notifier for live dashboard updates."""

from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

from ..contracts import NotificationEvent
from .base import BaseNotifier

logger = logging.getLogger(__name__)


class ConnectionManager(BaseNotifier):
    """Manages WebSocket connections and pushes events to all of them."""

    def __init__(self) -> None:
        self.active_connections: list[WebSocket] = []
        self._lock = asyncio.Lock()

    async def connect_client(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self.active_connections.append(websocket)

    async def disconnect_client(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        async with self._lock:
            if websocket in self.active_connections:
                self.active_connections.remove(websocket)

    async def broadcast(self, event: NotificationEvent) -> None:
        """Send ``event`` to every open connection, dropping dead ones."""
        if not self.active_connections:
            return

        text = event.to_json()
        async with self._lock:
            connections = list(self.active_connections)

        # the lock guards the list only; sends happen outside it
        disconnected = []
        for connection in connections:
            try:
                await connection.send_text(text)
            except Exception as e:
                logger.debug(f"Dropping WebSocket client after send failure: {e}")
                disconnected.append(connection)

        async with self._lock:
            for conn in disconnected:
                if conn in self.active_connections:
                    self.active_connections.remove(conn)
