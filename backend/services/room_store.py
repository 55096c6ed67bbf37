"""
Room Store: owns every live Room, keyed by its code.

Responsibilities:
- Room code generation (unique among live rooms, regenerated on collision)
- Roster mutation (join order is preserved; the first player ever added is the host)
- Room-level score bookkeeping
- Room state changes (WAITING → CONFIG → PLAYING → FINISHED)

The store only validates that a state is one of the four known states. Which
transitions are legal depends on the game being played (the spy game skips
CONFIG), so ordering is enforced by the event handlers.

In-process only: everything resets on restart.
"""
import logging
import random
import string
from typing import Any, Dict, List, Optional, Union

from models.errors import InvalidState, NotFound
from models.room import ConnectionBinding, Player, QuizSettings, Room, RoomState
from services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class RoomStore:

    def __init__(self, registry: Optional[ConnectionRegistry] = None, code_length: int = 6):
        self.rooms: Dict[str, Room] = {}
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.code_length = code_length

    # ── Room lifecycle ─────────────────────────────────────────────────────────

    def generate_code(self) -> str:
        code = "".join(random.choices(_CODE_ALPHABET, k=self.code_length))
        while code in self.rooms:
            code = "".join(random.choices(_CODE_ALPHABET, k=self.code_length))
        return code

    def create_room(self, creator_connection: str) -> Room:
        """Create an empty WAITING room owned by the creating connection."""
        room = Room(code=self.generate_code(), host_connection=creator_connection)
        self.rooms[room.code] = room
        self.registry.bind_host(creator_connection, room.code)
        logger.info(f"[{room.code}] Room created by connection {creator_connection}")
        return room

    def get_room(self, code: str) -> Optional[Room]:
        return self.rooms.get(normalize_code(code))

    def require_room(self, code: str) -> Room:
        room = self.get_room(code)
        if not room:
            raise NotFound("Room not found")
        return room

    def delete_room(self, code: str) -> Optional[Room]:
        room = self.rooms.pop(normalize_code(code), None)
        if room:
            self.registry.unbind_room(room.code)
            logger.info(f"[{room.code}] Room deleted")
        return room

    # ── Roster ─────────────────────────────────────────────────────────────────

    def add_player(self, code: str, connection_id: str, name: str) -> Player:
        room = self.require_room(code)

        player = Player(name=name, connection_id=connection_id)
        room.players.append(player)
        room.scores[player.id] = 0

        if room.host_player_id is None:
            room.host_player_id = player.id
            logger.info(f"[{room.code}] Player {name} ({player.id}) is the HOST")

        self.registry.bind_player(connection_id, room.code, player.id)
        logger.info(f"[{room.code}] Player {name} ({player.id}) joined ({len(room.players)} total)")
        return player

    def remove_player(self, code: str, player_id: str) -> bool:
        """
        Remove a player and their score entry.
        Returns True when the room was destroyed because its roster became empty.
        Missing room or player is a silent no-op.
        """
        room = self.get_room(code)
        if not room:
            return False
        player = room.get_player(player_id)
        if not player:
            return False

        room.players = [p for p in room.players if p.id != player_id]
        room.scores.pop(player_id, None)
        self.registry.unbind_player(room.code, player_id)
        logger.info(f"[{room.code}] Player {player.name} ({player_id}) left ({len(room.players)} remaining)")

        if not room.players:
            self.delete_room(room.code)
            return True
        return False

    def get_players(self, code: str) -> List[Player]:
        room = self.get_room(code)
        return list(room.players) if room else []

    def get_first_player_id(self, code: str) -> Optional[str]:
        room = self.get_room(code)
        if not room or not room.players:
            return None
        return min(room.players, key=lambda p: p.joined_at).id

    def is_host(self, code: str, player_id: Optional[str]) -> bool:
        room = self.get_room(code)
        if not room or not player_id:
            return False
        return room.host_player_id == player_id

    def find_by_connection(self, connection_id: str) -> Optional[ConnectionBinding]:
        return self.registry.lookup(connection_id)

    # ── State & settings ───────────────────────────────────────────────────────

    def set_state(self, code: str, next_state: Union[RoomState, str]) -> Room:
        room = self.require_room(code)
        try:
            state = RoomState(next_state)
        except ValueError:
            raise InvalidState(f"Unknown room state: {next_state}")
        if room.state != state:
            logger.info(f"[{room.code}] State: {room.state.value} → {state.value}")
        room.state = state
        return room

    def update_quiz_settings(self, code: str, updates: Dict[str, Any]) -> QuizSettings:
        room = self.require_room(code)
        room.quiz_settings = room.quiz_settings.model_copy(
            update={k: v for k, v in updates.items() if v is not None}
        )
        return room.quiz_settings

    def confirm_quiz_settings(self, code: str) -> QuizSettings:
        room = self.require_room(code)
        room.quiz_settings.confirmed = True
        return room.quiz_settings

    def get_room_stats(self) -> Dict[str, int]:
        return {
            "totalRooms": len(self.rooms),
            "totalPlayers": sum(len(r.players) for r in self.rooms.values()),
        }
