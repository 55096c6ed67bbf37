"""
Quiz Engine: per-room state machine for the multiple-choice quiz battle.

Phases: CREATED → STARTED → FINISHED (one-way).

Answers are first-write-wins: one AnswerRecord per (question index, player).
A duplicate is reported as `alreadyAnswered` and never touches the score.
Pacing is driven by the caller: next_question() advances whether or not every
player has answered. The time limit is informational only.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from games.base import GameEngine
from models.errors import InvalidState, NotFound, ValidationError
from models.games import AnswerRecord, Question, QuizPhase, QuizSession
from models.room import GameType, _utcnow

logger = logging.getLogger(__name__)


class QuizGameManager(GameEngine[QuizSession]):

    game_type = GameType.QUIZ

    def __init__(self, time_limit: int = 20000):
        super().__init__()
        self.time_limit = time_limit

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    def create_game(
        self,
        room_code: str,
        questions: List[Question],
        player_ids: Iterable[str] = (),
    ) -> QuizSession:
        if not questions:
            raise ValidationError("A quiz needs at least one question")
        game = QuizSession(
            room_code=room_code,
            questions=list(questions),
            scores={pid: 0 for pid in player_ids},
            time_limit=self.time_limit,
        )
        self._games[room_code] = game
        logger.info(f"[{room_code}] Quiz created with {len(game.questions)} questions")
        return game

    def start_game(self, room_code: str) -> QuizSession:
        game = self.get_game(room_code)
        if not game:
            raise NotFound("No quiz in progress for this room")
        if game.phase != QuizPhase.CREATED:
            raise InvalidState(f"Quiz cannot start from {game.phase.value}")
        game.phase = QuizPhase.STARTED
        game.started_at = game.question_started_at = _utcnow()
        return game

    def end_game(self, room_code: str) -> Optional[QuizSession]:
        game = self.get_game(room_code)
        if game:
            game.phase = QuizPhase.FINISHED
        return game

    # ── Roster hooks ───────────────────────────────────────────────────────────

    def on_player_joined(self, room_code: str, player_id: str) -> None:
        game = self.get_game(room_code)
        if game:
            game.scores.setdefault(player_id, 0)

    def on_player_left(self, room_code: str, player_id: str) -> None:
        game = self.get_game(room_code)
        if game:
            game.scores.pop(player_id, None)

    # ── Answers ────────────────────────────────────────────────────────────────

    def submit_answer(
        self, room_code: str, player_id: str, answer_index: int
    ) -> Optional[Dict[str, Any]]:
        """
        Record a player's answer to the current question.

        Returns None when there is no running quiz, {"alreadyAnswered": True}
        for a repeat submission, else {isCorrect, correctAnswer, score}.
        Out-of-range indexes are accepted and scored as incorrect.
        """
        game = self.get_game(room_code)
        if not game or game.phase != QuizPhase.STARTED:
            return None

        question_answers = game.answers.setdefault(game.current_index, {})
        if player_id in question_answers:
            return {"alreadyAnswered": True}

        question = game.questions[game.current_index]
        is_correct = answer_index == question.correct_answer
        question_answers[player_id] = AnswerRecord(
            answer_index=answer_index, is_correct=is_correct
        )

        if is_correct:
            game.scores[player_id] = game.scores.get(player_id, 0) + 1

        return {
            "isCorrect": is_correct,
            "correctAnswer": question.correct_answer,
            "score": game.scores.get(player_id, 0),
        }

    def get_player_answer(self, room_code: str, player_id: str) -> Optional[AnswerRecord]:
        game = self.get_game(room_code)
        if not game:
            return None
        return game.answers.get(game.current_index, {}).get(player_id)

    # ── Sequencing ─────────────────────────────────────────────────────────────

    def next_question(self, room_code: str) -> Optional[Dict[str, Any]]:
        game = self.get_game(room_code)
        if not game or game.phase != QuizPhase.STARTED:
            return None

        game.current_index += 1
        game.question_started_at = _utcnow()

        if game.current_index >= len(game.questions):
            game.phase = QuizPhase.FINISHED
            logger.info(f"[{room_code}] Quiz finished. Scores: {game.scores}")
            return {"finished": True, "finalScores": dict(game.scores)}

        return {
            "finished": False,
            "questionIndex": game.current_index,
            "totalQuestions": len(game.questions),
            "question": game.questions[game.current_index].to_public(),
            "timeLimit": game.time_limit,
        }

    def get_current_question(self, room_code: str) -> Optional[Dict[str, Any]]:
        game = self.get_game(room_code)
        if not game or game.finished:
            return None
        q = game.questions[game.current_index]
        return {
            "questionIndex": game.current_index,
            "totalQuestions": len(game.questions),
            "timeLimit": game.time_limit,
            **q.to_public(),
        }

    def get_final_scores(self, room_code: str) -> Optional[Dict[str, int]]:
        game = self.get_game(room_code)
        return dict(game.scores) if game else None
