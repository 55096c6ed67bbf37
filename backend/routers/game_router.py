"""
Room HTTP endpoints (read-only).

Routes:
  GET  /api/rooms/{code}              — Public room snapshot (roles and answers hidden)
  GET  /api/spy/ui-text/{language}    — Spy game UI text catalog for a language
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from games.spy_catalog import SUPPORTED_LANGUAGES, get_all_ui_text
from services.game_services import GameServices, get_game_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rooms"])


@router.get("/rooms/{code}")
async def get_room(code: str, svc: GameServices = Depends(get_game_services)):
    """
    Public room state.
    Spy assignments are NOT included; those are delivered privately via WebSocket.
    """
    room = svc.room_store.get_room(code)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    snapshot = room.to_public()
    spy_game = svc.spy.get_game(room.code)
    quiz_game = svc.quiz.get_game(room.code)
    snapshot["spy"] = spy_game.to_public() if spy_game else None
    snapshot["quiz"] = (
        {
            "phase": quiz_game.phase.value,
            "questionIndex": quiz_game.current_index,
            "totalQuestions": len(quiz_game.questions),
            "scores": dict(quiz_game.scores),
        }
        if quiz_game else None
    )
    return snapshot


@router.get("/spy/ui-text/{language}")
async def get_spy_ui_text(language: str):
    if language not in SUPPORTED_LANGUAGES:
        raise HTTPException(status_code=404, detail=f"Unsupported language: {language}")
    return {"language": language, "uiText": get_all_ui_text(language)}
