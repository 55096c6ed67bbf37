"""
Shared fixtures: an isolated GameServices per test, mock sockets and a fake
question oracle that can be held open to exercise the quiz-start window.
"""
import sys
import os
import asyncio
from typing import Any, Dict, List, Optional

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from models.games import Question
from routers.events import EventContext
from routers.ws_router import dispatch_message
from services.game_services import GameServices


# ---------------------------------------------------------------------------
# Mock WebSocket
# ---------------------------------------------------------------------------

class MockWebSocket:
    """Lightweight mock for fastapi.WebSocket."""
    def __init__(self, fail_sends: bool = False):
        self.sent_messages: List[dict] = []
        self.accepted = False
        self.fail_sends = fail_sends

    async def accept(self):
        self.accepted = True

    async def send_json(self, data: dict):
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent_messages.append(data)

    def last(self, msg_type: str) -> Optional[dict]:
        """Return the last sent message of a given type."""
        for msg in reversed(self.sent_messages):
            if msg.get("type") == msg_type:
                return msg
        return None

    def all(self, msg_type: str) -> List[dict]:
        """Return all sent messages of a given type."""
        return [m for m in self.sent_messages if m.get("type") == msg_type]


# ---------------------------------------------------------------------------
# Fake question oracle
# ---------------------------------------------------------------------------

def make_questions(num_questions=2, correct=0) -> List[Question]:
    return [
        Question(
            question=f"Question {i + 1}?",
            options=["A", "B", "C", "D"],
            correct_answer=correct,
        )
        for i in range(num_questions)
    ]


class FakeQuestionGenerator:
    """Returns a fixed question list. With `gate` set, waits for it first."""
    def __init__(self, questions=None, gate: Optional[asyncio.Event] = None):
        self.questions = questions if questions is not None else make_questions()
        self.gate = gate
        self.calls = 0

    async def generate_questions(self, count, quiz_settings=None):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return list(self.questions)


# ---------------------------------------------------------------------------
# Connected device helper
# ---------------------------------------------------------------------------

class Device:
    """One connected socket (display or phone) driving events through the dispatcher."""
    def __init__(self, svc: GameServices, connection_id: str, ws: MockWebSocket):
        self.svc = svc
        self.connection_id = connection_id
        self.ws = ws
        self.player_id: Optional[str] = None

    async def send(self, event: str, **data: Any) -> Dict[str, Any]:
        ctx = EventContext(connection_id=self.connection_id, services=self.svc)
        return await dispatch_message(ctx, event, data)

    def last(self, msg_type: str) -> Optional[dict]:
        return self.ws.last(msg_type)

    def all(self, msg_type: str) -> List[dict]:
        return self.ws.all(msg_type)


async def connect(svc: GameServices) -> Device:
    ws = MockWebSocket()
    connection_id = await svc.broadcaster.connect(ws)
    return Device(svc, connection_id, ws)


async def open_room(svc: GameServices, names=("Alice", "Bob", "Cara")):
    """Display creates a room, then one phone per name joins. Returns (display, code, phones)."""
    display = await connect(svc)
    res = await display.send("create-room")
    assert res["success"]
    code = res["roomCode"]

    phones = []
    for name in names:
        phone = await connect(svc)
        joined = await phone.send("join-room", roomCode=code, playerName=name)
        assert joined["success"], joined
        phone.player_id = joined["playerId"]
        phones.append(phone)
    return display, code, phones


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def questions():
    return FakeQuestionGenerator()


@pytest.fixture
def svc(questions):
    return GameServices(questions=questions)
