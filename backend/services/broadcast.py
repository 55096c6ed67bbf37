"""
Broadcast Router: audience fan-out over the live WebSocket connections.

Every connection gets an opaque handle when it is accepted. Rooms are
publish/subscribe groups of handles. Audiences:

  to_room          — every connection grouped under the room
  to_room (exclude) — the room minus the sender
  to_host          — the room's creating display connection
  send_to          — one specific connection

Delivery is best effort: a failed send is logged and the dead connection is
dropped. Nothing is retried.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Set

from fastapi import WebSocket

from models.room import Room

logger = logging.getLogger(__name__)


class BroadcastRouter:
    """
    Tracks active WebSocket connections and their room groups.
    Safe for asyncio single-threaded event loop (no extra locking needed).
    """

    def __init__(self):
        self._connections: Dict[str, WebSocket] = {}
        # {room_code: {connection_id}}
        self._groups: Dict[str, Set[str]] = {}

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def connect(self, ws: WebSocket) -> str:
        await ws.accept()
        connection_id = str(uuid.uuid4())
        self._connections[connection_id] = ws
        logger.debug(f"{connection_id} connected ({len(self._connections)} total)")
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        for code in list(self._groups):
            self.leave_group(code, connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    # ── Groups ─────────────────────────────────────────────────────────────────

    def join_group(self, room_code: str, connection_id: str) -> None:
        self._groups.setdefault(room_code, set()).add(connection_id)

    def leave_group(self, room_code: str, connection_id: str) -> None:
        members = self._groups.get(room_code)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            self._groups.pop(room_code, None)

    def drop_group(self, room_code: str) -> List[str]:
        return list(self._groups.pop(room_code, set()))

    def members(self, room_code: str) -> List[str]:
        return list(self._groups.get(room_code, set()))

    def count(self, room_code: str) -> int:
        return len(self._groups.get(room_code, set()))

    # ── Sending ────────────────────────────────────────────────────────────────

    async def send_to(self, connection_id: str, message: Dict[str, Any]) -> None:
        """Send a private message to a single connection."""
        ws = self._connections.get(connection_id)
        if not ws:
            return
        try:
            await ws.send_json(message)
        except Exception as exc:
            logger.warning(f"send_to {connection_id} failed: {exc}")
            self.disconnect(connection_id)

    async def send_many(self, connection_ids: List[str], message: Dict[str, Any]) -> None:
        for cid in connection_ids:
            await self.send_to(cid, message)

    async def to_room(
        self,
        room_code: str,
        message: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> None:
        """Broadcast a message to all connections grouped under a room."""
        targets = [cid for cid in self.members(room_code) if cid != exclude]
        await self.send_many(targets, message)

    async def to_host(self, room: Room, message: Dict[str, Any]) -> None:
        await self.send_to(room.host_connection, message)
