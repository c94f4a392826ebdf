from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class NotificationHub:
    """Keeps the open schedule websockets of each user and pushes events to them."""

    def __init__(self) -> None:
        self._sockets_by_user: dict[str, list[WebSocket]] = {}
        self._guard = asyncio.Lock()

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._guard:
            registered = self._sockets_by_user.setdefault(user_id, [])
            if websocket not in registered:
                registered.append(websocket)
        logger.debug("Schedule websocket opened for user %s", user_id)

    async def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        async with self._guard:
            self._forget(user_id, [websocket])

    def connection_count(self, user_id: str) -> int:
        return len(self._sockets_by_user.get(user_id, ()))

    def _forget(self, user_id: str, websockets: list[WebSocket]) -> None:
        remaining = [item for item in self._sockets_by_user.get(user_id, []) if item not in websockets]
        if remaining:
            self._sockets_by_user[user_id] = remaining
        else:
            self._sockets_by_user.pop(user_id, None)

    async def publish(self, user_id: str, payload: dict) -> int:
        """Send ``payload`` to every socket of ``user_id``; returns how many accepted it."""
        async with self._guard:
            targets = tuple(self._sockets_by_user.get(user_id, ()))

        broken: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_json(payload)
            except Exception:  # pragma: no cover - depends on the client going away
                broken.append(websocket)

        if broken:
            async with self._guard:
                self._forget(user_id, broken)
            logger.debug("Dropped %d closed schedule websocket(s) for user %s", len(broken), user_id)
        return len(targets) - len(broken)


notification_hub = NotificationHub()
