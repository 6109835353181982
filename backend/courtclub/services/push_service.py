"""Real-time push service.

Thin fire-and-forget layer over the WebSocket hub. Services call it from sync
code (request threadpool, sweeper threads) after their unit of work commits;
Notification rows stay the durable record, push is best-effort only.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Active WebSocket connections keyed by member id."""

    def __init__(self):
        self.active_connections: Dict[int, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, member_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self.active_connections.setdefault(member_id, set()).add(websocket)
        logger.info(
            "WebSocket connected for member %d (connections: %d)",
            member_id,
            len(self.active_connections[member_id]),
        )

    async def disconnect(self, member_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self.active_connections.get(member_id)
            if conns is not None:
                conns.discard(websocket)
                if not conns:
                    del self.active_connections[member_id]
        logger.info("WebSocket disconnected for member %d", member_id)

    async def send_to_member(self, member_id: int, message: Dict[str, Any]) -> bool:
        """Send to every connection of a member. Returns True if at least one send succeeded."""
        async with self._lock:
            connections = set(self.active_connections.get(member_id, set()))

        sent = False
        dead = []
        payload = json.dumps(message, default=str)
        for websocket in connections:
            try:
                await websocket.send_text(payload)
                sent = True
            except Exception as e:
                logger.warning(f"Error sending WebSocket message to member {member_id}: {e}")
                dead.append(websocket)

        for websocket in dead:
            await self.disconnect(member_id, websocket)
        return sent

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """Send to every connected client. Returns number of members reached."""
        async with self._lock:
            member_ids = list(self.active_connections.keys())
        reached = 0
        for member_id in member_ids:
            if await self.send_to_member(member_id, message):
                reached += 1
        return reached

    def connection_count(self, member_id: int) -> int:
        return len(self.active_connections.get(member_id, ()))


class PushService:
    """
    Schedules hub sends on the application's event loop.

    Until ``bind()`` is called with the running loop (application startup),
    operates in dry-run mode: messages are logged and dropped.
    """

    def __init__(self, manager: Optional[ConnectionManager] = None):
        self.manager = manager or ConnectionManager()
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop
        logger.info("Push service bound to event loop.")

    def unbind(self) -> None:
        self.loop = None

    @property
    def dry_run(self) -> bool:
        return self.loop is None or self.loop.is_closed()

    def notify_member(self, member_id: int, message: str, notification_type: str = "info") -> None:
        """Deliver a notification message to one member's connected clients."""
        self._submit(
            self.manager.send_to_member(
                member_id,
                {"event": "ReceiveNotification", "message": message, "type": notification_type},
            ),
            f"member {member_id}: {message[:80]}",
        )

    def broadcast(self, event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        """Broadcast an event (e.g. "UpdateCalendar") to every connected client."""
        self._submit(
            self.manager.broadcast({"event": event, "payload": payload or {}}),
            f"broadcast {event}",
        )

    def _submit(self, coro, description: str) -> None:
        if self.dry_run:
            logger.info(f"[DRY RUN] push to {description}")
            coro.close()
            return
        try:
            future = asyncio.run_coroutine_threadsafe(coro, self.loop)
            future.add_done_callback(self._log_failure)
        except RuntimeError as e:
            coro.close()
            logger.error(f"Failed to schedule push to {description}: {e}")

    @staticmethod
    def _log_failure(future) -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"Push delivery failed: {future.exception()}")


# Singleton instance
_push_service: Optional[PushService] = None


def get_push_service() -> PushService:
    """Get or create the singleton PushService instance."""
    global _push_service
    if _push_service is None:
        _push_service = PushService()
    return _push_service
