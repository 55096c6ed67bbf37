"""
Service container: the room store, the game engines, the question oracle and
the broadcast router for one process.

Handlers receive the container explicitly instead of reaching for module
globals, so tests can build an isolated one per case. All state is in-process
and lives until restart.
"""
from typing import Dict, Iterable, Optional

from config import settings
from games.base import GameEngine
from games.quiz import QuizGameManager
from games.spy import SpyGameManager
from models.room import GameType, Room
from services.broadcast import BroadcastRouter
from services.connection_registry import ConnectionRegistry
from services.question_service import QuestionGenerator
from services.room_store import RoomStore


class GameServices:

    def __init__(
        self,
        room_store: Optional[RoomStore] = None,
        quiz: Optional[QuizGameManager] = None,
        spy: Optional[SpyGameManager] = None,
        questions: Optional[QuestionGenerator] = None,
        broadcaster: Optional[BroadcastRouter] = None,
    ):
        self.room_store = room_store or RoomStore(
            ConnectionRegistry(), code_length=settings.room_code_length
        )
        self.quiz = quiz or QuizGameManager(time_limit=settings.quiz_time_limit_ms)
        self.spy = spy or SpyGameManager()
        self.questions = questions or QuestionGenerator()
        self.broadcaster = broadcaster or BroadcastRouter()
        self.engines: Dict[GameType, GameEngine] = {
            engine.game_type: engine for engine in (self.quiz, self.spy)
        }

    def engine_for(self, room: Room) -> Optional[GameEngine]:
        """The engine of the room's active game, if any."""
        if room.active_game is None:
            return None
        return self.engines.get(room.active_game)

    def all_engines(self) -> Iterable[GameEngine]:
        return self.engines.values()

    def end_games(self, room_code: str) -> None:
        """Drop every session bound to a room (room teardown / back to lobby)."""
        for engine in self.all_engines():
            engine.delete_game(room_code)


_game_services: Optional[GameServices] = None


def get_game_services() -> GameServices:
    """Lazy singleton, initialised on first call, not at import time.
    Use as a FastAPI dependency: Depends(get_game_services)
    """
    global _game_services
    if _game_services is None:
        _game_services = GameServices()
    return _game_services
