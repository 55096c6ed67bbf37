"""
Inbound WebSocket payload shapes.

Clients send camelCase keys (`roomCode`, `playerId`); models accept them by alias.
Unknown keys are ignored so older clients keep working.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional

from models.room import GameType


class EventPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RoomPayload(EventPayload):
    room_code: str = Field(alias="roomCode", min_length=1, max_length=16)
    player_id: Optional[str] = Field(default=None, alias="playerId")


class JoinRoomPayload(EventPayload):
    model_config = ConfigDict(str_strip_whitespace=True)

    room_code: str = Field(alias="roomCode", min_length=1, max_length=16)
    player_name: str = Field(alias="playerName", min_length=1, max_length=30)


class SelectGamePayload(RoomPayload):
    game_type: GameType = Field(alias="gameType")


class QuizSettingsUpdate(EventPayload):
    language: Optional[str] = Field(default=None, max_length=40)
    category: Optional[str] = Field(default=None, max_length=80)
    difficulty: Optional[str] = Field(default=None, max_length=40)


class UpdateQuizSettingsPayload(RoomPayload):
    settings: QuizSettingsUpdate


class SubmitAnswerPayload(RoomPayload):
    answer_letter: Optional[str] = Field(default=None, alias="answerLetter", max_length=1)
    answer_index: Optional[int] = Field(default=None, alias="answerIndex")


class SpyStartPayload(RoomPayload):
    language: str = "en"


class SpyVotePayload(RoomPayload):
    voted_for_id: str = Field(alias="votedForId", min_length=1)


class SpyLanguagePayload(RoomPayload):
    language: str


class SpyTimerPayload(RoomPayload):
    timer: int = Field(ge=0)


# ── Host/controller relay ─────────────────────────────────────────────────────

class ControllerInputPayload(RoomPayload):
    input: Any = None


class HostGameStatePayload(RoomPayload):
    state: Dict[str, Any] = Field(default_factory=dict)


class HostStartGamePayload(RoomPayload):
    game_name: Optional[str] = Field(default=None, alias="gameName", max_length=40)


class HostEndGamePayload(RoomPayload):
    final_scores: Dict[str, int] = Field(default_factory=dict, alias="finalScores")
