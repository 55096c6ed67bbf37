from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone
import uuid


def _utcnow() -> datetime:
    """Timezone-aware UTC datetime (replaces deprecated datetime.utcnow)."""
    return datetime.now(timezone.utc)


class RoomState(str, Enum):
    WAITING = "WAITING"
    CONFIG = "CONFIG"
    PLAYING = "PLAYING"
    FINISHED = "FINISHED"


class GameType(str, Enum):
    QUIZ = "quiz"
    SPY = "spy"


class ConnectionRole(str, Enum):
    HOST = "host"      # the display that created the room
    PLAYER = "player"  # a joined controller device


class QuizSettings(BaseModel):
    language: str = "English"
    category: str = "History"
    difficulty: str = "Medium"
    confirmed: bool = False

    def to_public(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "category": self.category,
            "difficulty": self.difficulty,
            "configReady": self.confirmed,
        }


class Player(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    connection_id: Optional[str] = None
    connected: bool = True
    joined_at: datetime = Field(default_factory=_utcnow)

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "connected": self.connected,
            "joinedAt": self.joined_at.isoformat(),
        }


class Room(BaseModel):
    code: str
    host_connection: str
    players: List[Player] = []
    host_player_id: Optional[str] = None
    state: RoomState = RoomState.WAITING
    quiz_settings: QuizSettings = Field(default_factory=QuizSettings)
    active_game: Optional[GameType] = None
    scores: Dict[str, int] = {}
    # Set while quiz questions are being generated; a second start is rejected.
    start_pending: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def to_public(self) -> Dict[str, Any]:
        return {
            "roomCode": self.code,
            "state": self.state.value,
            "hostPlayerId": self.host_player_id,
            "activeGame": self.active_game.value if self.active_game else None,
            "players": [p.to_public() for p in self.players],
            "quizSettings": self.quiz_settings.to_public(),
            "scores": dict(self.scores),
        }


class ConnectionBinding(BaseModel):
    connection_id: str
    room_code: str
    role: ConnectionRole
    player_id: Optional[str] = None
