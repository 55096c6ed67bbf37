from abc import ABC
from typing import Dict, Generic, Optional, TypeVar

from models.room import GameType

SessionT = TypeVar("SessionT")


class GameEngine(ABC, Generic[SessionT]):
    """
    One engine per game type, owning the live sessions of that game keyed by
    room code. Rooms pick their engine through `active_game`; room teardown and
    roster changes go through this interface instead of per-game branching.
    """

    game_type: GameType

    def __init__(self):
        self._games: Dict[str, SessionT] = {}

    def get_game(self, room_code: str) -> Optional[SessionT]:
        return self._games.get(room_code)

    def has_game(self, room_code: str) -> bool:
        return room_code in self._games

    def delete_game(self, room_code: str) -> bool:
        return self._games.pop(room_code, None) is not None

    def on_player_joined(self, room_code: str, player_id: str) -> None:
        """A player was added to a room with a live session of this game."""

    def on_player_left(self, room_code: str, player_id: str) -> None:
        """A player was removed from a room with a live session of this game."""
