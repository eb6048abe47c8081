"""WebSocket channel manager for realtime chat delivery."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from uuid import UUID

from fastapi import WebSocket, status

logger = logging.getLogger(__name__)


def conversation_channel(conversation_id: UUID | str) -> str:
    return f"conversation:{conversation_id}"


def group_channel(group_id: UUID | str) -> str:
    return f"group:{group_id}"


class MessageStreamManager:
    """Track per-channel WebSocket connections and broadcast events.

    Each connection remembers the profile it was authorized for, so a profile
    that loses access to a channel can be cut off without waiting for it to
    disconnect on its own.
    """

    def __init__(self) -> None:
        self._channels: dict[str, set[WebSocket]] = {}
        self._connections: dict[WebSocket, tuple[str, UUID | None]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, channel: str, websocket: WebSocket, *, profile_id: UUID | None = None) -> None:
        await websocket.accept()
        async with self._lock:
            subscribers = self._channels.setdefault(channel, set())
            subscribers.add(websocket)
            self._connections[websocket] = (channel, profile_id)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._forget(websocket)

    def _forget(self, websocket: WebSocket) -> str | None:
        entry = self._connections.pop(websocket, None)
        if entry is None:
            return None
        channel = entry[0]
        subscribers = self._channels.get(channel)
        if subscribers is not None:
            subscribers.discard(websocket)
            if not subscribers:
                self._channels.pop(channel, None)
        return channel

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    async def drop_subscriber(self, channel: str, profile_id: UUID) -> int:
        """Close every connection ``profile_id`` holds on ``channel``; returns how many were closed."""

        async with self._lock:
            targets = [
                connection
                for connection, (subscribed, owner) in self._connections.items()
                if subscribed == channel and owner == profile_id
            ]
            for connection in targets:
                self._forget(connection)
        for connection in targets:
            try:
                await connection.close(code=status.WS_1008_POLICY_VIOLATION)
            except Exception:
                logger.debug("Subscriber on %s was already closed", channel)
        if targets:
            logger.info("Dropped %d subscription(s) of profile %s on %s", len(targets), profile_id, channel)
        return len(targets)

    async def broadcast(self, channel: str | None, payload: dict[str, Any]) -> int:
        """Send ``payload`` to every subscriber of ``channel``; returns how many received it."""

        if not channel:
            return 0
        serialized = json.dumps(payload, default=str)
        async with self._lock:
            targets = list(self._channels.get(channel, ()))
        delivered = 0
        for connection in targets:
            try:
                await connection.send_text(serialized)
                delivered += 1
            except Exception:
                logger.info("Dropping stale subscriber on %s", channel)
                await self.disconnect(connection)
        return delivered


message_stream_manager = MessageStreamManager()


__all__ = ["conversation_channel", "group_channel", "message_stream_manager", "MessageStreamManager"]
