"""
Quiz battle events.

  quiz-start            — host starts the configured quiz (one oracle call)
  quiz-get-question     — current question for a late or reconnecting screen
  quiz-submit-answer    — first answer per player per question counts
  quiz-next-question    — host advances; past the last question the quiz ends

quiz-start is the only handler that suspends for long. The room is flagged
`start_pending` before the oracle call so a concurrent start is rejected, and
the room is re-checked once the questions arrive.
"""
import logging
from typing import Any, Dict

from config import settings
from models.errors import AlreadyActed, InvalidState, NotFound, ValidationError
from models.events import RoomPayload, SubmitAnswerPayload
from models.room import GameType, RoomState
from routers.events import (
    EventContext,
    on,
    parse,
    require_game,
    require_host,
    require_member,
    require_player,
    require_state,
)

logger = logging.getLogger(__name__)


def answer_index_from(payload: SubmitAnswerPayload) -> int:
    """`answerLetter` A-D (any letter, case-insensitive) or a raw `answerIndex`."""
    if payload.answer_letter is not None:
        letter = payload.answer_letter.strip().upper()
        if len(letter) != 1 or not ("A" <= letter <= "Z"):
            raise ValidationError("answerLetter must be a single letter")
        return ord(letter) - ord("A")
    if payload.answer_index is not None:
        return payload.answer_index
    raise ValidationError("answerLetter is required")


@on("quiz-start")
async def _on_quiz_start(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    if room.active_game != GameType.QUIZ:
        raise InvalidState("The quiz is not the selected game")
    if room.start_pending:
        raise InvalidState("Quiz is already starting")
    require_state(room, RoomState.CONFIG)
    if not room.quiz_settings.confirmed:
        raise InvalidState("Confirm the quiz settings first")

    code = room.code
    room.start_pending = True
    try:
        questions = await svc.questions.generate_questions(
            settings.quiz_question_count, room.quiz_settings.model_copy()
        )
    finally:
        room.start_pending = False

    # Anything may have happened while the oracle was working.
    current = svc.room_store.get_room(code)
    if current is not room:
        raise NotFound("Room was closed while the quiz was being prepared")
    if room.state != RoomState.CONFIG or room.active_game != GameType.QUIZ:
        raise InvalidState("Room changed while the quiz was being prepared")

    svc.quiz.create_game(code, questions, [p.id for p in room.players])
    svc.quiz.start_game(code)
    svc.room_store.set_state(code, RoomState.PLAYING)

    public_questions = [q.to_public() for q in questions]
    await svc.broadcaster.to_room(code, {
        "type": "quiz-started",
        "questions": public_questions,
        "currentQuestion": svc.quiz.get_current_question(code),
    })
    await svc.broadcaster.to_room(code, {
        "type": "state-changed",
        "state": RoomState.PLAYING.value,
        "gameType": GameType.QUIZ.value,
    })
    return {"questions": public_questions, "totalQuestions": len(public_questions)}


@on("quiz-get-question")
async def _on_quiz_get_question(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_member(ctx, room, payload.player_id)
    require_game(room, GameType.QUIZ)

    question = svc.quiz.get_current_question(room.code)
    if not question:
        raise NotFound("No active question")
    return {"question": question}


@on("quiz-submit-answer")
async def _on_quiz_submit_answer(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(SubmitAnswerPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    player_id = require_player(ctx, room, payload.player_id)
    require_game(room, GameType.QUIZ)
    answer_index = answer_index_from(payload)

    result = svc.quiz.submit_answer(room.code, player_id, answer_index)
    if result is None:
        raise InvalidState("No question is open for answers")
    if result.get("alreadyAnswered"):
        raise AlreadyActed("You already answered this question", alreadyAnswered=True)

    await svc.broadcaster.to_room(room.code, {
        "type": "quiz-answer-submitted",
        "playerId": player_id,
        "answerIndex": answer_index,
        "isCorrect": result["isCorrect"],
        "scores": svc.quiz.get_final_scores(room.code),
    })
    return result


@on("quiz-next-question")
async def _on_quiz_next_question(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_game(room, GameType.QUIZ)

    result = svc.quiz.next_question(room.code)
    if result is None:
        raise InvalidState("The quiz is not running")

    if result["finished"]:
        room.scores.update(result["finalScores"])
        svc.room_store.set_state(room.code, RoomState.FINISHED)
        await svc.broadcaster.to_room(room.code, {
            "type": "quiz-finished",
            "finalScores": result["finalScores"],
        })
        await svc.broadcaster.to_room(room.code, {
            "type": "state-changed",
            "state": RoomState.FINISHED.value,
            "gameType": GameType.QUIZ.value,
        })
    else:
        await svc.broadcaster.to_room(room.code, {"type": "quiz-new-question", **result})
    return result
