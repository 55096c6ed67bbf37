from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime

from models.room import _utcnow


# ── Quiz ──────────────────────────────────────────────────────────────────────

class QuizPhase(str, Enum):
    CREATED = "CREATED"
    STARTED = "STARTED"
    FINISHED = "FINISHED"


class Question(BaseModel):
    question: str
    options: List[str]
    correct_answer: int = 0

    def to_public(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
        }


class AnswerRecord(BaseModel):
    answer_index: int
    is_correct: bool
    answered_at: datetime = Field(default_factory=_utcnow)


class QuizSession(BaseModel):
    room_code: str
    questions: List[Question]
    current_index: int = 0
    phase: QuizPhase = QuizPhase.CREATED
    # question index → {player_id → AnswerRecord}
    answers: Dict[int, Dict[str, AnswerRecord]] = {}
    scores: Dict[str, int] = {}
    time_limit: int = 20000  # milliseconds, shown by clients only
    started_at: Optional[datetime] = None
    question_started_at: Optional[datetime] = None

    @property
    def finished(self) -> bool:
        return self.phase == QuizPhase.FINISHED


# ── Who is the spy ────────────────────────────────────────────────────────────

class SpyPhase(str, Enum):
    REVEAL = "REVEAL"
    GAMEPLAY = "GAMEPLAY"
    VOTING = "VOTING"
    RESULT = "RESULT"


class Winner(str, Enum):
    SPY = "SPY"
    CIVILIANS = "CIVILIANS"


class Location(BaseModel):
    # language → display name / role labels; role lists are index-aligned across languages
    name: Dict[str, str]
    roles: Dict[str, List[str]]


class RoleAssignment(BaseModel):
    is_spy: bool
    role_index: Optional[int] = None
    role: Optional[str] = None
    location: Optional[str] = None

    def to_public(self) -> Dict[str, Any]:
        """Private payload: only ever sent to the assigned player's own connection."""
        return {"isSpy": self.is_spy, "role": self.role, "location": self.location}


class SpySession(BaseModel):
    room_code: str
    location: Location
    language: str = "en"
    spy_id: str
    assignments: Dict[str, RoleAssignment] = {}
    phase: SpyPhase = SpyPhase.REVEAL
    timer: int = 300  # seconds, display only
    votes: Dict[str, str] = {}  # voter_id → voted_for_id
    winner: Optional[Winner] = None
    reason: Optional[str] = None
    round: int = 1
    started_at: datetime = Field(default_factory=_utcnow)

    def to_public(self) -> Dict[str, Any]:
        """Safe representation: omits the spy and every assignment."""
        return {
            "phase": self.phase.value,
            "timer": self.timer,
            "language": self.language,
            "round": self.round,
            "totalVotes": len(self.votes),
            "winner": self.winner.value if self.winner else None,
        }
