import logging
from typing import Dict, List, Optional

from models.room import ConnectionBinding, ConnectionRole

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Maps a live connection handle to the room it belongs to and the role it
    plays there. Used to resolve disconnects and to check who is acting.

    A connection that created a room stays bound as the room's host transport
    even if the same device also joins as a player.
    """

    def __init__(self):
        self._bindings: Dict[str, ConnectionBinding] = {}

    def bind_host(self, connection_id: str, room_code: str) -> ConnectionBinding:
        binding = ConnectionBinding(
            connection_id=connection_id,
            room_code=room_code,
            role=ConnectionRole.HOST,
        )
        self._bindings[connection_id] = binding
        return binding

    def bind_player(
        self, connection_id: str, room_code: str, player_id: str
    ) -> ConnectionBinding:
        existing = self._bindings.get(connection_id)
        if existing and existing.role == ConnectionRole.HOST and existing.room_code == room_code:
            existing.player_id = player_id
            return existing
        binding = ConnectionBinding(
            connection_id=connection_id,
            room_code=room_code,
            role=ConnectionRole.PLAYER,
            player_id=player_id,
        )
        self._bindings[connection_id] = binding
        return binding

    def lookup(self, connection_id: str) -> Optional[ConnectionBinding]:
        return self._bindings.get(connection_id)

    def unbind(self, connection_id: str) -> Optional[ConnectionBinding]:
        return self._bindings.pop(connection_id, None)

    def unbind_player(self, room_code: str, player_id: str) -> None:
        for cid, binding in list(self._bindings.items()):
            if binding.room_code != room_code or binding.player_id != player_id:
                continue
            if binding.role == ConnectionRole.HOST:
                # host transport keeps its room, it just stops being a player
                binding.player_id = None
            else:
                self._bindings.pop(cid, None)

    def unbind_room(self, room_code: str) -> List[str]:
        """Drop every binding of a room. Returns the released connection ids."""
        released = [
            cid for cid, b in self._bindings.items() if b.room_code == room_code
        ]
        for cid in released:
            self._bindings.pop(cid, None)
        if released:
            logger.debug(f"[{room_code}] released {len(released)} connection binding(s)")
        return released
